#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from setuptools import setup, find_packages
from codecs import open
from os import path

here = path.abspath(path.dirname(__file__))

# Get the long description from the README file
with open(path.join(here, 'README.rst'), encoding='utf-8') as f:
    long_description = f.read()

setup(
    name='cmstool',
    version=__import__('cmstool').__version__,
    description='Command line tool for detached CMS (PKCS#7) signatures, test certificates and PKCS#12 import.',
    long_description=long_description,
    long_description_content_type='text/x-rst',
    license='MIT',
    classifiers=[
        'Development Status :: 4 - Beta',
        'Operating System :: OS Independent',
        'Intended Audience :: Developers',
        'Environment :: Console',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
        'Topic :: Security :: Cryptography',
    ],
    keywords='cryptography pki x509 cms pkcs7 pkcs12 asn1 signature',
    packages=find_packages(exclude=['tests']),
    include_package_data=True,
    platforms=["all"],
    python_requires='>=3.9',
    install_requires=['cryptography>=42', 'asn1crypto'],
    extras_require={'test': ['pytest']},
    entry_points={
        'console_scripts': ['cmstool=cmstool.cli:main'],
    },
    test_suite="tests",
)
