from setuptools import find_packages, setup

setup(
    name='adb-trigger',
    version='1.0.0',
    description='TCP line-command daemon that triggers adb connect/disconnect/pair for wireless debugging',
    author='',
    author_email='',
    packages=find_packages(include=['adbtrigger', 'adbtrigger.*']),
    python_requires='>=3.12',
    install_requires=[
        'msgspec',
        'tenacity',
        'transitions',
        'uvloop',
        'prometheus-client>=0.20',
    ],
    extras_require={
        'test': [
            'pytest',
            'pytest-asyncio',
        ],
    },
    entry_points={
        'console_scripts': [
            'adbtrigger=adbtrigger.daemon:main',
        ],
    },
    classifiers=[
        'Programming Language :: Python :: 3',
        'Operating System :: POSIX :: Linux',
    ],
)
