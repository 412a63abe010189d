"""
OCR Reconstruct - Package Setup Configuration
=============================================

Package setup for the OCR text region and word box reconstruction library.
Supports pip installation, development mode, and distribution.
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README for long description
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding='utf-8')

# Read requirements
requirements = []
requirements_file = this_directory / "requirements.txt"
if requirements_file.exists():
    requirements = requirements_file.read_text().strip().split('\n')
    requirements = [req.strip() for req in requirements if req.strip() and not req.startswith('#')]

setup(
    # Basic package information
    name="ocr-reconstruct",
    version="1.0.0",
    description="Text region, word box and coordinate reconstruction for DB/CTC OCR models",
    long_description=long_description,
    long_description_content_type="text/markdown",

    # Package structure
    packages=find_packages(where="src"),
    package_dir={"": "src"},

    # Include additional files
    include_package_data=True,
    package_data={
        "ocr_reconstruct": [
            "resources/*.yaml",
        ],
    },

    # Dependencies
    install_requires=requirements,

    # Optional dependencies for different use cases
    extras_require={
        "onnx": [
            "onnxruntime>=1.12.0",
        ],
        "gpu": [
            "onnxruntime-gpu>=1.12.0",
        ],
        "dev": [
            "pytest>=6.0.0",
            "pytest-cov>=2.12.0",
        ],
        "all": [
            "onnxruntime>=1.12.0",
            "pytest>=6.0.0",
            "pytest-cov>=2.12.0",
        ],
    },

    # Python version requirement
    python_requires=">=3.8",

    # Classification
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Scientific/Engineering :: Image Recognition",
    ],

    # Keywords for PyPI
    keywords=[
        "ocr", "optical character recognition", "text detection",
        "ctc", "dbnet", "word boxes", "onnx", "computer vision",
    ],

    # Zip safety
    zip_safe=False,
)
