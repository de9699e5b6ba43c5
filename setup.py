"""Install websession package."""

from setuptools import setup, find_packages

setup(
    name='websession',
    version='0.1.0',
    packages=find_packages(exclude=['*test*']),
    install_requires=[
        "flask>=2.2",
        "werkzeug>=2.2",
        "pyjwt>=2.0",
        "cryptography",
        "pytz",
    ],
    extras_require={
        'test': [
            "pytest",
            "pytest-mock",
        ]
    },
    zip_safe=False
)
