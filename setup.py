"""
Setup script for PocketLedger.

Usage:
    pip install -e .            # development install
    pip install -e ".[test]"    # with test dependencies

Data is kept in ~/.pocket-ledger/ (SQLite ledger, local store JSON, logs).
"""
from setuptools import setup

PACKAGES = [
    # Our packages
    'config',
    'storage',
    'ledger',
]

INSTALL_REQUIRES = [
    'werkzeug>=2.3',           # password hashing
    'python-dateutil>=2.8',    # ISO-8601 parsing of stored dates
]

EXTRAS_REQUIRE = {
    'test': [
        'pytest>=7.0',
    ],
}

setup(
    name='pocket-ledger',
    version='1.0.0',
    description='Personal finance ledger with local SQLite and JSON storage',
    packages=PACKAGES,
    python_requires='>=3.9',
    install_requires=INSTALL_REQUIRES,
    extras_require=EXTRAS_REQUIRE,
)
