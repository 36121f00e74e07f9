from __future__ import annotations

from setuptools import find_packages, setup  # type: ignore


setup(
    name="figura",
    version="0.1.0",
    description="Motion script compiler: keyframe codec, clip library, choreography compositor and retargeter",
    python_requires=">=3.10",
    package_dir={"": "src"},
    packages=find_packages("src"),
    install_requires=[
        "numpy",
        "fastapi",
        "uvicorn",
        "httpx",
    ],
    extras_require={
        "test": [
            "pytest",
            "httpx",
        ],
    },
    entry_points={
        "console_scripts": [
            "figura=figura.__main__:main",
        ],
    },
)
