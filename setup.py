import os

import setuptools

ROOT_DIR = os.path.dirname(__file__)


setuptools.setup(
    name="gcsflow",
    version="0.1.0",
    python_requires=">=3.8",
    author="LaunchFlow",
    author_email="founders@launchflow.com",
    description="Google Cloud Storage actions and batch sink for data pipelines.",
    long_description=open(
        os.path.join(ROOT_DIR, "README.md"), "r", encoding="utf-8"
    ).read(),
    long_description_content_type="text/markdown",
    classifiers=[
        "Intended Audience :: Developers",
        "Topic :: Software Development",
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
    packages=setuptools.find_packages(include=["gcsflow", "gcsflow.*"]),
    entry_points={"console_scripts": ["gcsflow = gcsflow.cli.main:main"]},
    install_requires=[
        "dacite",
        "fastavro",
        "fastparquet",
        "fsspec",
        "gcsfs",
        "google-api-core",
        "google-auth",
        "google-cloud-storage",
        "pandas",
        "pyarrow",
        "pyyaml",
        "rich",
        "typer",
    ],
    extras_require={
        "dev": [
            "pytest",
            "pytest-cov",
            "pytest-timeout",
            "ruff",
            "black",
            "pre-commit",
            "setuptools",
            "wheel",
        ]
    },
)
