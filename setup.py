from setuptools import find_packages, setup

setup(
    name="ndnping",
    version="0.1.0",
    platforms=["any"],
    license="MIT",
    packages=find_packages(include=["ndnping", "ndnping.*"]),
    install_requires=[
        "click>=8.1.7",
        "colorama>=0.4.6",
        "pydantic>=2.11.4",
        "numpy>=2.2.5",  # генератор случайных чисел модельной сети
    ],
    tests_require=[
        "pytest",
    ],
    entry_points={
        "console_scripts": [
            "ndnping = ndnping.client.cli:cli_run",
            "ndnpingserver = ndnping.server.cli:cli_run",
        ],
    },
    python_requires=">=3.11",
    extras_require={
        "ndn": [
            "python-ndn",  # транспорт через форвардер NFD
        ],
        "test": [
            "pytest",
            "python-ndn",  # тесты адаптера NDN
        ],
    }
)
