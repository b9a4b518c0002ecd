import os
import re
from setuptools import setup, find_packages

with open(os.path.join(os.path.dirname(__file__), "src", "pgpartitioner", "versioncontrol.py"), encoding="UTF-8") as f:
    version = re.search(r"[\"']version[\"']\s*:\s*[\"']([^\"']+)[\"']", f.read()).group(1)

setup(
    name='pgpartitioner',
    version=version,
    description='Manutenção automática de tabelas particionadas por range no PostgreSQL',
    author='Leonardo Rodrigues',
    author_email='leonardo.a.rodrigues@itau-unibanco.com.br',
    url='',
    package_dir={"": "src"},
    packages=find_packages(where="src", exclude=("tests*", "docs*")),
    include_package_data=True,
    install_requires=[
        "sqlalchemy>=2.0.36",
        "psycopg2-binary>=2.9",
        "injector>=0.21",
        "pydantic>=2.0",
        "python-dateutil>=2.8",
    ],
    extras_require={
        "dev": ["pytest", "pytest-mock", "flake8", "black"],
        "test": ["pytest", "pytest-mock"],
    },
    entry_points={
        "console_scripts": [
            "pgpartitioner=pgpartitioner.main:main",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires='>=3.11',
)
