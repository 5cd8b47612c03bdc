from setuptools import setup, find_packages

setup(
    name="shopgate",
    version="0.1.0",
    packages=find_packages(include=["shopgate", "shopgate.*"]),
    python_requires=">=3.11",
    install_requires=[
        "fastapi",
        "starlette",
        "pydantic",
        "pydantic-settings",
        "httpx",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
)
