from __future__ import annotations

from setuptools import find_packages, setup

from config.version import PROJECT_VERSION, PYTHON_REQUIRES_SPECIFIER

if __name__ == "__main__":
    setup(
        name="blogscout",
        version=PROJECT_VERSION,
        python_requires=PYTHON_REQUIRES_SPECIFIER,
        packages=find_packages(include=["src", "src.*", "config", "blogscout"]),
        py_modules=["main"],
        package_data={"config": ["VERSION"]},
        install_requires=[
            "httpx>=0.24",
            "feedparser>=6.0",
            "beautifulsoup4>=4.11",
            "python-dateutil>=2.8",
            "pydantic>=2.0",
            "python-dotenv>=1.0",
            "SQLAlchemy>=2.0",
            "loguru>=0.7",
            "fastapi>=0.100",
            "uvicorn>=0.22",
            "tomli>=2.0; python_version < '3.11'",
        ],
        extras_require={
            "toml-write": ["tomli-w>=1.0"],
            "test": ["pytest>=7.0", "hypothesis>=6.0", "tomli-w>=1.0"],
        },
        entry_points={"console_scripts": ["blogscout=main:main"]},
    )
