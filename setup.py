#!/usr/bin/env python

from setuptools import setup

from reqtools import __version__, __author__, __license__, __doc__

setup(
    name="reqtools",
    version=__version__,
    description="Command line tokenizer and streaming multipart/form-data encoder.",
    long_description=__doc__,
    author=__author__,
    py_modules=["reqtools"],
    license=__license__,
    platforms="any",
    python_requires=">=3.6",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Topic :: Internet :: WWW/HTTP",
        "Topic :: Software Development :: Libraries",
        "Topic :: Text Processing",
        "Programming Language :: Python :: 3",
    ],
)
