# tests/test_merger.py
"""Test candidate ranking, selection and transcript merging"""

from lyrics_resolver.lyrics.merger import CandidateSelector, are_same_song, merge_lyrics, select_best
from lyrics_resolver.lyrics.models import Candidate
from lyrics_resolver.lyrics.scoring import score_completeness

from conftest import COMPLETE_LYRICS, OTHER_SONG, PARTIAL_WITH_CHORUS, PARTIAL_WITH_SECOND_VERSE


class TestSameSong:
    """Test the first-lines overlap heuristic"""

    def test_identical_openings(self):
        assert are_same_song(PARTIAL_WITH_CHORUS, PARTIAL_WITH_SECOND_VERSE)

    def test_unrelated_songs(self):
        assert not are_same_song(PARTIAL_WITH_CHORUS, OTHER_SONG)

    def test_case_insensitive_substring_overlap(self):
        first = "WALKING DOWN THE EMPTY STREET\nneon signs\nsomething else"
        second = "Walking down the empty street tonight\nNeon signs are flickering\nanother line"
        assert are_same_song(first, second)

    def test_single_matching_line_is_not_enough(self):
        first = "Walking down the empty street\nline two\nline three"
        second = "Walking down the empty street\nother two\nother three"
        assert not are_same_song(first, second)

    def test_empty_input(self):
        assert not are_same_song("", PARTIAL_WITH_CHORUS)


class TestMergeLyrics:
    """Test the best-effort merge"""

    def test_empty_secondary_returns_primary(self):
        assert merge_lyrics(PARTIAL_WITH_CHORUS, "") == PARTIAL_WITH_CHORUS
        assert merge_lyrics("", PARTIAL_WITH_CHORUS) == PARTIAL_WITH_CHORUS

    def test_merge_is_idempotent_with_empty_second_input(self):
        merged = merge_lyrics(PARTIAL_WITH_CHORUS, PARTIAL_WITH_SECOND_VERSE)
        assert merge_lyrics(merged, "") == merged

    def test_different_songs_return_longer(self):
        longer = OTHER_SONG + "\nOne more line to make this one longer than the other"
        assert merge_lyrics(PARTIAL_WITH_CHORUS, longer) == (
            longer if len(longer) > len(PARTIAL_WITH_CHORUS) else PARTIAL_WITH_CHORUS
        )

    def test_second_verse_is_spliced_in(self):
        merged = merge_lyrics(PARTIAL_WITH_CHORUS, PARTIAL_WITH_SECOND_VERSE)

        assert "[Verse 2]" in merged
        assert "Rain is falling on the silent river" in merged
        assert "[Chorus]" in merged
        assert merged.count("Walking down the empty street tonight") == 1
        assert score_completeness(merged) > score_completeness(PARTIAL_WITH_CHORUS)
        assert score_completeness(merged) > score_completeness(PARTIAL_WITH_SECOND_VERSE)

    def test_spliced_block_follows_anchor_section(self):
        merged = merge_lyrics(PARTIAL_WITH_CHORUS, PARTIAL_WITH_SECOND_VERSE)
        lines = merged.split('\n')
        assert lines.index("[Verse 2]") > lines.index("Never let it go until the night")

    def test_missing_marker_is_interleaved(self):
        primary = (
            "Line one of the song is here\n"
            "Line two of the song is here\n"
            "Line three of the song is here\n"
            "Line four of the song is here"
        )
        secondary = (
            "[Intro]\n"
            "Line two of the song is here\n"
            "Line three of the song is here\n"
            "Line four of the song is here"
        )
        merged = merge_lyrics(primary, secondary)
        assert merged.split('\n')[0] == "[Intro]"

    def test_lrc_timestamps_and_tags_are_not_interleaved(self):
        primary = (
            "Walking down the empty street tonight\n"
            "Neon signs are flickering above me\n"
            "Every window holds a different story\n"
            "I keep on moving with the city lights"
        )
        secondary = (
            "[ar:IU]\n"
            "[00:01.00][00:31.00]\n"
            "Neon signs are flickering above me\n"
            "Every window holds a different story"
        )
        assert merge_lyrics(primary, secondary) == primary

    def test_consecutive_duplicates_and_blank_runs_collapse(self):
        primary = (
            "[Verse 1]\nSame opening line here\nSame opening line here\nSecond line\n\n\n\n"
            "[Chorus]\nChorus line one"
        )
        secondary = "[Verse 1]\nSame opening line here\nSecond line\nThird line"
        merged = merge_lyrics(primary, secondary)
        assert "\n\n\n" not in merged
        assert merged.count("Same opening line here") == 1


class TestCandidateSelector:
    """Test ranking and the merge decision"""

    def test_no_candidates(self):
        assert CandidateSelector().select([]) is None

    def test_single_strong_candidate_is_not_merged(self, complete_candidate):
        partial = Candidate(lyrics=PARTIAL_WITH_CHORUS, source='bugs')
        best = CandidateSelector().select([partial, complete_candidate])

        assert best.candidate is complete_candidate
        assert best.completeness_score >= 85
        assert not best.merged

    def test_clear_completeness_gap_beats_priority(self, complete_candidate):
        weak_but_trusted = Candidate(lyrics=PARTIAL_WITH_CHORUS, source='genius')
        strong_scrape = Candidate(lyrics=COMPLETE_LYRICS, source='openai')
        ranked = CandidateSelector().rank([weak_but_trusted, strong_scrape])
        assert ranked[0].candidate.source == 'openai'

    def test_priority_decides_within_gap(self):
        bugs = Candidate(lyrics=PARTIAL_WITH_SECOND_VERSE, source='bugs')
        genius = Candidate(lyrics=PARTIAL_WITH_CHORUS, source='genius')
        ranked = CandidateSelector().rank([bugs, genius])
        assert [r.candidate.source for r in ranked] == ['genius', 'bugs']

    def test_length_decides_when_both_close(self):
        short = Candidate(lyrics=PARTIAL_WITH_CHORUS, source='openai')
        longer = Candidate(lyrics=PARTIAL_WITH_CHORUS + "\nOne more closing line", source='gemini')
        ranked = CandidateSelector().rank([short, longer])
        assert ranked[0].candidate.source == 'gemini'

    def test_partial_candidates_are_merged(self, partial_candidates):
        best = CandidateSelector().select(partial_candidates)
        individual = [score_completeness(c.lyrics) for c in partial_candidates]

        assert best.merged
        assert best.candidate.source == 'genius+bugs'
        assert best.sources == ['genius', 'bugs']
        assert best.completeness_score > max(individual)
        assert best.candidate.metadata['completeness_score'] == best.completeness_score

    def test_merge_not_attempted_above_threshold(self, partial_candidates):
        best = CandidateSelector(good_enough_score=20).select(partial_candidates)
        assert not best.merged
        assert best.candidate.source == 'genius'

    def test_different_songs_return_longer_unmodified(self):
        longer_text = '\n'.join([
            "Midnight train is rolling through the valley",
            "Steam and thunder underneath the stars",
            "Every station whispers something different",
            "Every stranger carries different scars",
            "I left my letters on the kitchen table",
            "I left my heart beside the garden gate",
            "If you read them maybe you will follow",
            "If you follow maybe it's not too late",
            "Midnight train is rolling through the valley",
        ])
        shorter = Candidate(lyrics=OTHER_SONG, source='lrclib')
        longer = Candidate(lyrics=longer_text, source='syncedlyrics')

        best = select_best([shorter, longer])

        assert not best.merged
        assert best.candidate.lyrics == longer_text

    def test_non_beneficial_merge_is_discarded(self):
        first = Candidate(lyrics=PARTIAL_WITH_CHORUS, source='genius')
        same = Candidate(lyrics=PARTIAL_WITH_CHORUS, source='bugs')
        best = CandidateSelector().select([first, same])
        assert not best.merged
        assert best.candidate is first

    def test_merged_candidate_combines_flags(self):
        first = Candidate(lyrics=PARTIAL_WITH_CHORUS, source='genius', confidence=0.6)
        second = Candidate(lyrics=PARTIAL_WITH_SECOND_VERSE, source='bugs', confidence=0.9, has_timestamps=True)
        best = CandidateSelector().select([first, second])
        assert best.candidate.confidence == 0.9
        assert best.candidate.has_timestamps
