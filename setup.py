from setuptools import setup, find_packages


with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="liveprof",
    version="0.1.0",
    description="Sampled in-process profiling for live Python services.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    packages=find_packages(exclude=("tests", "tests.*")),
    package_data={"liveprof.schemas": ["*.json"]},
    python_requires=">=3.10",
    install_requires=["PyYAML", "jsonschema", "networkx", "pandas<3"],
    extras_require={"test": ["pytest"]},
    entry_points={"console_scripts": ["liveprof=liveprof.cli:main"]},
)
