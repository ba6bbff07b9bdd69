#!/usr/bin/env python3
"""
Setup script for Thai Election 69 ballot forensics.

Install with:
    pip install -e .

With test tools:
    pip install -e ".[dev]"
"""

from setuptools import setup
from pathlib import Path

# Read version
version_file = Path(__file__).parent / "version.py"
version_dict = {}
exec(version_file.read_text(), version_dict)
__version__ = version_dict.get("__version__", "0.3.0")

# Read README
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text() if readme_file.exists() else ""

setup(
    name="thai-election-forensics",
    version=__version__,
    author="Thai Election 69 Forensics Contributors",
    author_email="",
    description="Reconcile ECT election feeds with constituency boundaries and score turnout anomalies",
    long_description=long_description,
    long_description_content_type="text/markdown",
    license="MIT",
    py_modules=[
        "anomaly_scoring",
        "cli",
        "config",
        "dashboard_data",
        "ect_api",
        "ect_schemas",
        "election_lookups",
        "election_reporting",
        "election_types",
        "geo_matching",
        "logging_config",
        "provinces",
        "stats_aggregation",
        "version",
    ],
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Topic :: Scientific/Engineering :: Information Analysis",
        "Topic :: Sociology",
    ],
    python_requires=">=3.11",
    install_requires=[
        "requests>=2.28.0",
        "tenacity>=8.0.0",
        "pydantic>=2.4.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "pyright>=0.1.0",
            "pre-commit>=3.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "election-forensics=cli:main",
        ],
    },
    include_package_data=True,
    zip_safe=False,
    keywords="thai election ect forensics turnout anomaly",
)
