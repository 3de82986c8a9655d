#!/usr/bin/env python3
"""
Setup script for SMSGuard.
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

setup(
    name="smsguard",
    version="0.1.0",
    author="Yobie Benjamin",
    author_email="yobie@example.com",
    description="On-device smishing detection with retrieval-grounded local LLMs",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["smsguard", "smsguard.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Security",
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.10",
    install_requires=requirements,
    extras_require={
        "llm": [
            "llama-cpp-python>=0.2.50",
        ],
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "smsguard=smsguard.demo:main",
        ],
    },
    include_package_data=True,
    zip_safe=False,
)
