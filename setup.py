"""
Setup configuration for the swaybar service status block.
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read long description from README if it exists
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text() if readme_file.exists() else ""

setup(
    name="swaybar-service-status",
    version="1.0.0",
    description="Swaybar status block showing whether a systemd service is active",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="NixOS Configuration Team",
    author_email="",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pydbus>=0.6.0",
        "PyGObject>=3.42",
        "pydantic>=2.0",
    ],
    python_requires=">=3.11",
    entry_points={
        "console_scripts": [
            "service-status-bar=service_status.status_generator:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX :: Linux",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Topic :: System :: Monitoring",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
        ],
    },
)
