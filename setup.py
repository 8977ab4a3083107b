from setuptools import setup, find_packages

setup(
    name="valuesort",
    version="0.7.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "click",
        "numpy",
        "pandas",
        "scipy",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        'console_scripts': [
            'valuesort=valuesort.cli:main',
            'valuesort-sim=valuesort.simulation:main',
        ],
    },
    description="Rank your personal values through quick pairwise choices",
    long_description=open('README.md').read(),
    long_description_content_type="text/markdown",
    python_requires=">=3.11",
)
