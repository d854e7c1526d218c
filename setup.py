#!/usr/bin/env python3
"""
Setup configuration for lyrics-resolver
Multi-source lyrics resolution with completeness scoring and merging
"""

from setuptools import setup, find_packages

# Read README for long description
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# Core requirements (always installed)
core_requirements = [
    "requests>=2.31.0",
    "lyricsgenius>=3.0.1",
    "beautifulsoup4>=4.12.0",
    "click>=8.1.7",
    "pyyaml>=6.0.1",
    "tqdm>=4.66.1",
    "colorama>=0.4.6",
    "python-dotenv>=1.0.0",
]

setup(
    name="lyrics-resolver",
    version="1.0.0",
    author="lyrics-resolver contributors",
    description="Resolve complete song lyrics across many sources with scoring, merging and caching",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Multimedia :: Sound/Audio",
        "Topic :: Internet :: WWW/HTTP :: Dynamic Content",
    ],
    python_requires=">=3.9",
    install_requires=core_requirements,
    extras_require={
        "extra-lyrics": [
            "syncedlyrics>=1.0.0",
        ],
        "dev": [
            "pytest>=7.4.3",
            "black>=23.11.0",
            "flake8>=6.1.0",
            "mypy>=1.7.0",
        ],
        "all": [
            "syncedlyrics>=1.0.0",
        ]
    },
    entry_points={
        "console_scripts": [
            "lyrics-resolver=lyrics_resolver.main:cli",
        ],
    },
    include_package_data=True,
    keywords="lyrics genius lrclib melon bugs cache cli",
)
