# setup.py
"""Setup script for the collection core."""

import os

from setuptools import setup, find_packages

setup(
    name="efm-core",
    version="0.1.0",
    description="Content-addressed file set ingestion, storage and retrieval for software preservation collections",
    long_description=open("README.md").read() if os.path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    author="EFM Team",
    packages=find_packages(include=["efm_core", "efm_core.*"]),
    python_requires=">=3.9",
    install_requires=[
        "Pillow>=8.0.0",
        "tqdm>=4.50.0",
        "zstandard>=0.15.0",
        "boto3>=1.20.0",
        "botocore>=1.23.0",
        "keyring>=23.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=6.0.0",
            "pytest-cov>=2.10.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "efm-core=efm_core.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: System :: Archiving",
    ],
)
