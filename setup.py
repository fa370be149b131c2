#!/usr/bin/env python
"""
Storefront API Setup
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

setup(
    name="storefront-api",
    version="1.0.0",
    description="Storefront backend: catalog, orders, customer records and admin statistics",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Framework :: FastAPI",
        "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
        "Topic :: Database",
    ],
    python_requires=">=3.11",
    install_requires=requirements,
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
            "pytest-asyncio>=0.23.0",
            "httpx>=0.26.0",
            "aiosqlite>=0.19.0",
            "ruff>=0.1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "storefront-seed=src.database.seed:run",
        ],
    },
    include_package_data=True,
    zip_safe=False,
    keywords=[
        "ecommerce",
        "storefront",
        "fastapi",
        "sqlalchemy",
        "postgresql",
        "redis",
    ],
)
