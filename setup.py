"""Setup configuration for the puzzle-assembly package."""

from setuptools import find_packages, setup

setup(
    name="puzzle-assembly",
    version="0.1.0",
    packages=find_packages(include=["puzzle_assembly", "puzzle_assembly.*"]),
    python_requires=">=3.10",
    install_requires=[
        "numpy",
        "pydantic>=2",
        "pydantic-settings>=2",
        "tqdm",
    ],
    extras_require={
        "dev": [
            "pytest",
            "pytest-cov",
            "black",
            "flake8",
            "mypy",
            "isort",
        ],
    },
    entry_points={
        "console_scripts": [
            "puzzle-assembly=puzzle_assembly.cli:main",
        ],
    },
)
