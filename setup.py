from setuptools import setup, find_packages

'''
Notes: This is the setup file for the portwarden project.
It defines the package metadata and dependencies required for installation.
'''

setup(
    name = "portwarden",
    version = "0.4.0",
    description= "portwarden - See which process owns a listening port and stop it safely",
    packages=find_packages(include=["portwarden", "portwarden.*"]),
    python_requires='>=3.10',
    install_requires=[
        # Core
        "pydantic>=2",
        "PyYAML",
        "python-dotenv",

        # System
        "psutil",
        "docker",
        "requests",
    ],
    extras_require={
        "test": ["pytest"],
    },
)
