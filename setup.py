"""Setup configuration for hublights"""

from setuptools import setup, find_namespace_packages

setup(
    name="hublights",
    version="0.1.0",
    description=(
        "Check-suite status monitor for GitHub repositories: polling, "
        "caching, and persisted target configuration."
    ),
    author="HubLights Contributors",
    author_email="",
    python_requires=">=3.10",
    package_dir={"": "src"},
    packages=find_namespace_packages(where="src", include=["hublights*"]),
    install_requires=[
        "requests>=2.28.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "black>=22.0",
            "flake8>=4.0",
            "mypy>=0.950",
        ],
    },
    entry_points={
        "console_scripts": [
            "hublights=hublights.main:main",
        ],
    },
)
