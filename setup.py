from setuptools import setup, find_packages
import re

# Read version from compcalc/__init__.py
with open('compcalc/__init__.py') as f:
    version = re.search(r'^__version__ = ["\']([^"\']+)["\']', f.read(), re.MULTILINE).group(1)

setup(
    name='comp-calc',
    version=version,
    packages=find_packages(include=['compcalc', 'compcalc.*']),
    install_requires=[
        'PyYAML>=6.0',
        'click>=8.0',
        'pydantic>=2.0.0',
        'rich>=13.0',
        'requests>=2.28',
    ],
    extras_require={
        'mcp': [
            'mcp[cli]>=1.0.0,<2',
        ],
        'test': [
            'pytest>=7.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'comp-calc=compcalc.cli.__main__:main',
            'comp-calc-mcp=compcalc.mcp.server:run_server',
        ],
    },
    author='Personal',
    description='Multi-year compensation projections: salary, bonus and RSU vesting.',
    python_requires='>=3.10',
)
