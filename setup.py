"""Setup configuration for TableVault CLI."""

import os
import re

from setuptools import find_packages, setup

here = os.path.abspath(os.path.dirname(__file__))

# Get version from package
with open(os.path.join(here, "tablevault", "__init__.py"), encoding="utf-8") as f:
    init_source = f.read()
__version__ = re.search(r'__version__ = "([^"]+)"', init_source).group(1)
__author__ = re.search(r'__author__ = "([^"]+)"', init_source).group(1)

# Get the long description from the README file
with open(os.path.join(here, "README.md"), encoding="utf-8") as f:
    long_description = f.read()

setup(
    name="tablevault-cli",
    version=__version__,
    description="Backup and restore of a chat bot's relational store",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author=__author__,
    keywords="backup restore database snapshot cli",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"tablevault": ["templates/*.j2"]},
    python_requires=">=3.8",
    install_requires=[
        "click>=8.0.0",
        "pyyaml>=6.0",
        "jinja2>=3.0.0",
        "jsonschema>=4.0.0",
        "sqlalchemy>=2.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
        ],
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.12.0",
            "mypy>=0.991",
        ],
    },
    entry_points={
        "console_scripts": [
            "tablevault=tablevault.cli:cli",
        ],
    },
)
