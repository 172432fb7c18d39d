"""
CreeperKeeper setuptools build script.

Usage:
    # Development (editable, links to source):
    pip install -e .

    # Run the tests:
    python -m unittest discover -s tests

Installs the `crkr` command. ffmpeg and ffprobe must be on PATH for the
hardsub and concat commands.
"""

from setuptools import setup, find_namespace_packages

APP_NAME = "creeperkeeper"

setup(
    name=APP_NAME,
    version="0.4.0",
    description="Archive vines: download, subtitle, hardsub and concatenate",
    packages=find_namespace_packages(include=["creeperkeeper", "creeperkeeper.*"]),
    py_modules=["main"],
    install_requires=[
        "requests>=2.28.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    python_requires=">=3.10",
    entry_points={
        "console_scripts": [
            "crkr=main:main",
        ],
    },
)
