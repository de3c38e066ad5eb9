from setuptools import setup, find_packages

setup(
    name="varrecode",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    entry_points={
        "console_scripts": [
            "varrecode=varrecode.cli:main",
        ],
    },
    install_requires=[
        "pysam",
        "pyyaml",
    ],
    extras_require={
        "parquet": ["pandas", "pyarrow"],
        "test": ["pytest"],
    },
)
