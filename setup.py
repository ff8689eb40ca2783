from setuptools import setup, find_packages

setup(
    name="diffblocks",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pyyaml",
        "textual",
        "diff-match-patch",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "diffblocks=diffblocks.cli:main",
        ],
    },
    description="Parse, apply and review SEARCH/REPLACE change blocks from LLM responses.",
)
