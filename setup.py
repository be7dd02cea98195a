# This should be only one line. If it must be multi-line, indent the second
# line onwards to keep the PKG-INFO file format intact.
"""Transparent encryption of files in git repositories with age.
"""

from setuptools import find_packages, setup

version = open("src/agecrypt/version.txt").read().strip()

setup(
    name="git-agecrypt",
    version=version,
    install_requires=[
        "cryptography",
        "py",
        "pyrage>=1.1", ],
    extras_require={
        "test": [
            "mock",
            "pytest",
            "pytest-coverage",
            "pytest-instafail",
            "pytest-timeout", ]},
    entry_points="""
        [console_scripts]
            git-agecrypt = agecrypt.main:main
    """,
    license="BSD (2-clause)",
    keywords="git age encryption filter",
    classifiers="""\
License :: OSI Approved :: BSD License
Programming Language :: Python
Programming Language :: Python :: 3
Programming Language :: Python :: 3.11
Programming Language :: Python :: 3.12
Programming Language :: Python :: 3 :: Only
"""[:-1].split("\n"),
    description=__doc__.strip(),
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    packages=find_packages("src"),
    package_dir={"": "src"},
    package_data={"agecrypt": ["version.txt"]},
    zip_safe=False,
    python_requires=">=3.11")
