from setuptools import find_namespace_packages, setup

setup(
    name="reclaim",
    version="1.1.0",
    description="Memory optimizer and disk cleanup for macOS with before/after accounting.",
    python_requires=">=3.11",
    packages=find_namespace_packages(include=["reclaim", "reclaim.*"]),
    install_requires=[
        "typer>=0.12",
        "rich>=13.7",
        "result>=0.17",
        "psutil>=5.9",
    ],
    extras_require={
        "test": ["pytest>=8.0"],
    },
    entry_points={
        "console_scripts": [
            "reclaim=reclaim.cli.app:cli",
        ],
    },
)
