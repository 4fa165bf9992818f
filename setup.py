from setuptools import setup, find_packages

setup(
    name='listing-gateway',
    version='0.1.0',
    package_dir={'': 'src'},
    packages=find_packages(where='src'),
    python_requires='>=3.10',
    install_requires=[
        'pyyaml>=6.0',
        'packaging>=23.0',
        'pillow>=10.0.0',
        'openai>=1.3.0',
        'google-generativeai>=0.3.0',
        'google-api-core>=2.11.0',
        'python-dotenv>=1.0.0',
        'fastapi>=0.110.0',
        'pydantic>=2.0',
        'uvicorn>=0.27.0',
        'python-multipart>=0.0.9',
    ],
    extras_require={
        'dev': [
            'pytest>=7.4.0',
            'pytest-cov>=4.1.0',
            'httpx>=0.27.0',
            'black>=23.0.0',
            'flake8>=6.0.0',
            'mypy>=1.5.0',
        ]
    },
    entry_points={
        'console_scripts': [
            'listing-gateway=listing_gateway.cli.main:main',
        ],
    },
)
