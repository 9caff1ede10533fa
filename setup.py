#!/usr/bin/env python3

from setuptools import setup, find_packages
import sys


if sys.version_info[:3] < (3, 8, 0):
    raise Exception("You need Python 3.8+")


requirements = [
    "llvmlite", "pythonparser",
]

setup(
    name="dbgprop",
    version="0.1.0",
    author="dbgprop developers",
    description="Debug metadata propagation for SSA IR transforms",
    long_description=open("README.rst", encoding="utf-8").read(),
    license="LGPLv3+",
    classifiers="""\
Development Status :: 3 - Alpha
Environment :: Console
Intended Audience :: Developers
License :: OSI Approved :: GNU Lesser General Public License v3 or later (LGPLv3+)
Operating System :: OS Independent
Programming Language :: Python :: 3
Topic :: Software Development :: Compilers
""".splitlines(),
    install_requires=requirements,
    extras_require={},
    packages=find_packages(),
    namespace_packages=[],
    include_package_data=True,
    ext_modules=[],
)
