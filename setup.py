#!/usr/bin/env python3

from setuptools import setup, find_packages

setup(
    name="idl-schema",
    version="0.1.0",
    description="Decode Solana account and instruction data from an IDL",
    author="Firedancer Contributors",
    packages=find_packages(include=["idl_schema", "idl_schema.*"]),
    install_requires=[
        "base58>=2.1.0",
        "click>=8.0.0",
        "numpy>=1.21.0",
        "pyyaml>=6.0",
        "solders>=0.18.0",
    ],
    extras_require={
        "test": [
            "deepdiff>=6.0.0",
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "idl-schema=idl_schema.cli:main",
        ],
    },
    python_requires=">=3.8",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
