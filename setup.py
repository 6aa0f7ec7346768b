#!/usr/bin/env python3
"""
Setup configuration for mixtape-matcher
Resolve mixtape track lists to YouTube videos with caching and API key rotation
"""

from setuptools import setup, find_packages

# Read README for long description
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# Core requirements (always installed)
core_requirements = [
    "requests>=2.31.0",
    "pyyaml>=6.0.1",
    "python-dotenv>=1.0.0",
    "tqdm>=4.66.1",
    "rich>=13.7.0",
    "click>=8.1.7",
    "rich-click>=1.7.0",
]

setup(
    name="mixtape-matcher",
    version="0.1.0",
    author="mixtape-matcher contributors",
    description="Resolve mixtape track lists to YouTube videos with a two-tier cache and API key rotation",
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
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Multimedia :: Sound/Audio",
        "Topic :: Internet :: WWW/HTTP :: Dynamic Content",
    ],
    python_requires=">=3.10",
    install_requires=core_requirements,
    extras_require={
        "dev": [
            "pytest>=7.4.3",
            "black>=23.11.0",
            "flake8>=6.1.0",
            "mypy>=1.7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "mixtape-match=mixtape_matcher.cli:main",
        ],
    },
    keywords="youtube music mixtape playlist matching cli",
)
