"""
Setup script for tiny-quantile.
"""

from setuptools import setup, find_packages

setup(
    name="tiny-quantile",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"tiny_quantile": ["py.typed"]},
    python_requires=">=3.8",
)
