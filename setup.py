from setuptools import setup, find_packages

setup(
    name='starview',
    version='1.0.7',
    description='Game asset fetcher: resolves and downloads content-addressed asset archives',
    package_dir={'': 'src'},
    packages=find_packages('src'),
    python_requires='>=3.9',
    install_requires=[
        'aiohttp',
        'aiofiles',
        'msgpack',
        'platformdirs',
        'PyYAML',
        'rich',
    ],
    extras_require={
        'test': [
            'pytest',
            'pytest-asyncio',
            'pytest-mock',
        ],
    },
    entry_points={
        'console_scripts': [
            'starview=starview.cli:main',
        ],
    },
)
