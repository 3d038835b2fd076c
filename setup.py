"""Setup configuration for the NBA projection line-movement tracker."""
from setuptools import setup, find_packages
from pathlib import Path

# Read README for long description
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

setup(
    name="linewatch",
    version="1.0.0",
    description="NBA projection board tracker with line movement between refreshes",
    long_description=long_description,
    long_description_content_type="text/markdown",
    python_requires=">=3.11",
    packages=find_packages(where=".", include=["linewatch", "linewatch.*"]),
    package_dir={"": "."},
    install_requires=[
        "httpx==0.27.2",
        "tenacity==9.0.0",
        "pydantic==2.9.2",
        "python-dotenv==1.0.1",
        "pandas==2.2.3",
        "fastapi==0.115.0",
        "uvicorn[standard]==0.31.0",
        "prometheus-client==0.21.0",
        "slowapi==0.1.9",
    ],
    extras_require={
        "dev": [
            "pytest==8.3.3",
            "pytest-asyncio==0.24.0",
            "black",
            "flake8",
            "mypy",
        ],
    },
    entry_points={
        "console_scripts": [
            "linewatch-refresh=linewatch.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
