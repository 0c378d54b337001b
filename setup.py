# setup.py
from setuptools import setup, find_packages

setup(
    name="spendly",
    version="0.1.0",
    description="A small personal ledger for tracking income, expenses and a running balance",
    author="Your Name",
    author_email="you@example.com",
    url="https://github.com/yourusername/spendly",
    packages=find_packages(include=["spendly", "spendly.*"]),
    python_requires=">=3.9",
    install_requires=[
        "click>=7.0",
        "pyyaml>=5.3",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "spendly=spendly.cli:main",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
)
