"""Setup script for segment-replay package."""

from setuptools import setup, find_packages
from pathlib import Path

# Read README
readme_path = Path(__file__).parent / "README.md"
long_description = ""
if readme_path.exists():
    long_description = readme_path.read_text(encoding="utf-8")

setup(
    name="segment-replay",
    version="0.1.0",
    description="Offline video segmentation with cached overlay replay",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*", "examples"]),
    python_requires=">=3.11",
    install_requires=[
        "numpy>=1.26.0,<2",
        "opencv-python>=4.8.0",
        "Pillow>=10.0.0",
        "aiohttp>=3.9.0",
    ],
    extras_require={
        "model": [
            "torch>=2.7.0",
            "transformers>=4.40.0",
        ],
        "env": [
            "python-dotenv>=1.0.0",
        ],
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
        ],
        "all": [
            "torch>=2.7.0",
            "transformers>=4.40.0",
            "python-dotenv>=1.0.0",
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Scientific/Engineering :: Artificial Intelligence",
        "Topic :: Scientific/Engineering :: Image Recognition",
    ],
)
