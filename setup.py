#!/usr/bin/env python3
"""
Cache Verifier Setup Script
===========================
Allows installation of the cache-verifier package.

Usage:
    pip install -e .           # Development install
    pip install -e ".[test]"   # Development install with test tools
    pip install .              # Regular install
"""

from setuptools import setup, find_packages

setup(
    name="cache-verifier",
    version="1.0.0",
    packages=find_packages(include=["cache_verifier", "cache_verifier.*"]),
    python_requires=">=3.10",
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
        ],
    },
    entry_points={
        "console_scripts": [
            "cache-verifier=cache_verifier.cli:main",
        ],
    },
)
