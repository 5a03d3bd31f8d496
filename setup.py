#!/usr/bin/env python
from setuptools import setup, find_packages

with open("README.md", "r", encoding='utf-8') as fh:
    long_description = fh.read()

setup(
    name="pipefish",
    version="1.0.0",
    description="Deploy new container images from AWS CodePipeline to AWS ECS services",
    author="Caltech IMSS ADS",
    author_email="imss-ads-staff@caltech.edu",
    long_description=long_description,
    long_description_content_type="text/markdown",
    keywords=['aws', 'ecs', 'codepipeline', 'lambda', 'docker', 'devops'],
    classifiers=[
       "Programming Language :: Python :: 3"
    ],
    packages=find_packages(exclude=['*.test']),
    include_package_data=True,
    package_data={'pipefish': ["py.typed"]},
    install_requires=[
        "boto3 >= 1.17",
        "cement>=3.0.0",
        "click >= 6.7",
        "colorlog",
        "jsondiff2 >= 1.2.3",
        "PyYAML >= 5.1",
        "tabulate >= 0.8.1",
    ],
    extras_require={
        'test': [
            "mock",
            "testfixtures",
        ]
    },
    entry_points={'console_scripts': [
        'pipefish = pipefish.main:main',
        'pfish = pipefish.main:main'
    ]}
)
