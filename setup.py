#!/usr/bin/env python
# -*- coding: utf-8 -*-

from setuptools import setup, find_packages

package_name = 'layermie'
PACKAGES = [package_name]

def get_init_val(val, packages=PACKAGES):
    pkg_init = "%s/__init__.py" % packages[0]
    value = '__%s__' % val
    with open(pkg_init, encoding='utf-8') as fn:
        for line in fn.readlines():
            if line.startswith(value):
                return line.split('=')[1].strip().strip("'")

setup(
    name=get_init_val('title'),
    version=get_init_val('version'),
    description=get_init_val('description'),
    long_description=open('README.md', encoding='utf-8').read(),
    long_description_content_type='text/markdown',
    author=get_init_val('author'),
    license=get_init_val('license'),
    keywords='electromagnetism mie scattering multilayer sphere',
    python_requires='>=3.8',
    install_requires=[
        'numpy>=1.20.0',
        'pandas>=1.0.0',
        'pyyaml>=5.1',
        'requests>=2.18.0',
    ],
    extras_require={
        'test': ['pytest', 'scipy>=1.1.0'],
    },
    packages=find_packages(include=[package_name, package_name + '.*']),
)
