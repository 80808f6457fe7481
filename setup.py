"""
setup.py: Setup script for the OCR Order Reconciliation Service
"""

from setuptools import setup, find_packages

setup(
    name="ocr-order-reconciler",
    version="0.1.0",
    description="Catalog reconciliation and export of OCR'd order forms",
    packages=find_packages(exclude=["scripts", "scripts.*"]),
    install_requires=[
        "fastapi>=0.104.0",
        "uvicorn[standard]>=0.24.0",
        "python-multipart>=0.0.6",
        "sqlalchemy>=2.0.0",
        "pydantic>=2.5.0",
        "click>=8.1.7",
        "python-dotenv>=1.0.0",
        "python-Levenshtein>=0.21.1",
        "tqdm>=4.66.0",
        "requests>=2.31.0",
        "slowapi>=0.1.9",
    ],
    extras_require={
        'test': [
            "pytest>=7.4.0",
        ],
    },
    entry_points={
        'console_scripts': [
            'order-recon=recon.cli.main:cli',
        ],
    },
)
