# setup.py
from setuptools import setup, find_packages

setup(
    name="script-scout",
    version="0.1.0",
    description="Browser-driven crawler that captures the JavaScript and WebAssembly a site loads",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "playwright>=1.40",
        "pydantic>=2.5",
        "PyYAML>=6.0",
        "click>=8.1",
        "beautifulsoup4>=4.12",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
            "aiohttp>=3.9",
        ],
    },
    entry_points={
        "console_scripts": [
            "script-scout=script_scout.cli:cli",
        ],
    },
    python_requires=">=3.11",
)
