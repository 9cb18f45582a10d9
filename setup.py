from setuptools import setup, find_packages


setup(
    name="tokenseal",
    version="0.1",
    packages=find_packages(include=["tokenseal", "tokenseal.*"]),
    description="Encrypted, signed, self-contained tokens for structured values (session cookies, tickets).",
    author="vercingetorx",
    python_requires=">=3.9",
    install_requires=[
        "pycryptodomex>=3.23.0",
    ],
    entry_points={
        "console_scripts": [
            "tokenseal=tokenseal.cli:main",
        ]
    },
)
