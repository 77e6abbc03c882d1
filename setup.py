#!/usr/bin/env python
# -*- coding: utf-8 -*-

from setuptools import setup

setup(
    name='settee',
    version='0.1.0',
    description='CouchDB view client with self-installing, versioned design documents',
    long_description="""
    Query CouchDB views and lists through a design document that is installed
    under a content fingerprint on first use, stream view rows as they arrive,
    and route requests with URL placeholders.""",
    license='BSD',
    classifiers=[
        'Intended Audience :: Developers',
        'License :: OSI Approved :: BSD License',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
        'Topic :: Database :: Front-Ends',
        'Topic :: Software Development :: Libraries :: Python Modules',
    ],
    packages=['settee', 'settee.tests'],
    python_requires='>=3.6',
    install_requires=[
        "furl",
        "requests",
        "requests_toolbelt",
    ],
    extras_require={
        'test': ['pytest'],
    },
    test_suite='settee.tests.suite',
    zip_safe=True,
)
