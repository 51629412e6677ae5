"""Setup configuration for deploystats"""

from setuptools import setup, find_namespace_packages

setup(
    name="gh-deployment-stats",
    version="0.1.0",
    description=(
        "CLI tool for GitHub deployment latency: time from deployment creation "
        "to first success status, optionally split by a cutoff date."
    ),
    author="GitHub Deployment Stats Contributors",
    author_email="",
    python_requires=">=3.10",
    package_dir={"": "src"},
    packages=find_namespace_packages(where="src"),
    install_requires=[
        "aiohttp>=3.8.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "pytest-asyncio>=0.20.0",
            "black>=22.0",
            "flake8>=4.0",
            "mypy>=0.950",
        ],
    },
    entry_points={
        "console_scripts": [
            "gh-deployment-stats=deploystats.main:main",
        ],
    },
)
