#!/usr/bin/env python
"""Setup script for pqledger - Quantum-Resistant Append-Only Ledger."""

from setuptools import setup, find_packages
from pathlib import Path

# Read the README file
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding="utf-8")

# Core dependencies
core_deps = [
    "pydantic>=2.0.0",
    "cryptography>=41.0.0",
    "dilithium-py>=1.0.0",
]

# Optional dependencies for different features
extras_require = {
    # Development dependencies
    "dev": [
        "pytest>=7.4.0",
        "pytest-cov>=4.1.0",
        "pytest-mock>=3.11.0",
        "black>=23.7.0",
        "isort>=5.12.0",
        "flake8>=6.1.0",
        "mypy>=1.5.0",
        "bandit>=1.7.5",
    ],

    # Testing dependencies
    "test": [
        "pytest>=7.4.0",
        "pytest-cov>=4.1.0",
        "pytest-mock>=3.11.0",
    ],
}

setup(
    name="pqledger",
    version="0.1.0",
    description="Append-only ledger with post-quantum (Dilithium / ML-DSA) signatures",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Topic :: Security :: Cryptography",
        "Topic :: Database",
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: OS Independent",
        "Typing :: Typed",
    ],
    keywords="ledger post-quantum dilithium ml-dsa signatures tamper-evident audit",
    python_requires=">=3.9",
    install_requires=core_deps,
    extras_require=extras_require,
    entry_points={
        "console_scripts": [
            "pqledger=pqledger.cli:main",
        ],
    },
    include_package_data=True,
    package_data={
        "pqledger": ["py.typed"],
    },
    zip_safe=False,
)
