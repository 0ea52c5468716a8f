#!/usr/bin/env python
from setuptools import setup

setup(
    name='cs.mp4info',
    version='20261019',
    description='Extract basic video properties from ISO14496 (MP4/MOV) files.',
    author='Cameron Simpson',
    author_email='cs@cskk.id.au',
    url='https://bitbucket.org/cameron_simpson/css/commits/all',
    license='GNU General Public License v3 or later (GPLv3+)',
    keywords=['python3'],
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Topic :: Multimedia :: Video",
        "Operating System :: OS Independent",
        "License :: OSI Approved :: GNU General Public License v3 or later (GPLv3+)",
    ],
    python_requires='>=3.8',
    package_dir={'': 'lib/python'},
    packages=['cs.mp4info'],
    install_requires=[
        'cs.binary>=20250501',
        'cs.deco',
        'cs.logutils',
        'cs.pfx',
        'icontract',
        'typeguard',
    ],
    extras_require={
        'test': [
            'pytest',
        ],
    },
)
