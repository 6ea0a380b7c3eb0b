#!/usr/bin/env python3
"""
Setup script for the Access Digest Python package.
Makes the system pip-installable.
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README for long description
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text() if readme_file.exists() else ""

setup(
    name="access-digest",
    version="1.0.0",
    author="Your Name",
    author_email="your.email@example.com",
    description="Access logging and emailed access digest reports",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/your-org/access-digest",
    packages=find_packages(where="scripts", exclude=["tests", "tests.*"]),
    package_dir={"": "scripts"},
    py_modules=["lambda_handlers", "generate_access_report"],
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: System :: Logging",
        "Topic :: Internet :: WWW/HTTP :: Site Management",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.8",
    install_requires=[
        "boto3>=1.26.0",
        "jinja2>=3.0.0",
        "markupsafe>=2.0.0",
        "python-dateutil>=2.8.0",
        "requests>=2.28.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "black>=23.0.0",
            "flake8>=6.0.0",
        ],
        "test": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "access-digest=generate_access_report:main",
        ],
    },
    include_package_data=True,
    package_data={
        "reporting": [
            "templates/*.jinja2",
        ],
    },
    project_urls={
        "Bug Reports": "https://github.com/your-org/access-digest/issues",
        "Source": "https://github.com/your-org/access-digest",
    },
)
