#!/usr/bin/env python3
"""Setup script for gen-mr."""

from pathlib import Path

from setuptools import find_packages
from setuptools import setup


# Read the README file
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding="utf-8")

setup(
    name="gen-mr",
    version="0.1.0",
    author="gen-mr contributors",
    description="AI-generated titles and descriptions for GitHub pull requests and GitLab merge requests",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.12",
    install_requires=[
        "aiohttp>=3.8.0",
        "aiofiles>=23.1.0",
        "click>=8.1.0",
        "returns>=0.22.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.1.0",
            "mypy>=1.5.0",
            "ruff>=0.1.0",
            "types-aiofiles>=23.1.0",
        ],
        "test": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.1.0",
            "hypothesis>=6.80.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "gen-pr=genmr.cli:gen_pr",
            "gen-mr=genmr.cli:gen_mr",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Version Control :: Git",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
    ],
)
