# setup.py
from setuptools import setup, find_packages

setup(
    name="inventorystore",
    version="0.1.0",
    description="Product inventory store with in-memory and JSON-file backends and concurrent bulk import",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "typer>=0.9.0",
        "pydantic>=2.0",
        "pydantic-settings>=2.0",
        "rich>=10.0.0",
        "tomli>=2.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "hypothesis>=6.0",
            "jsonschema>=4.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "invstore=inventorystore.main:run",
        ],
    },
)
