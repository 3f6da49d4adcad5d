"""
Setup script for fluxshear package.
"""

from setuptools import setup, find_namespace_packages

setup(
    name="fluxshear",
    version="0.1.0",
    description="GPU-accelerated flux-conserving two-pass image shear resampling",
    packages=find_namespace_packages(include=["fluxshear", "fluxshear.*"]),
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.20",
        "numba>=0.56",
        "matplotlib>=3.5",
        "scipy>=1.7",
    ],
    extras_require={
        "dev": ["pytest>=7.0", "black", "flake8"],
        "test": ["pytest>=7.0"],
    },
)
