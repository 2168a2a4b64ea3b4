from setuptools import find_packages, setup

setup(
    name="StatPower",
    version="0.1.0",
    packages=find_packages(include=["statpower", "statpower.*"]),
    python_requires=">=3.9",
    install_requires=[
        "numpy",
        "pandas",
        "scipy",
        "joblib>=1.3",
    ],
    extras_require={
        "progress": ["tqdm"],
        "test": ["pytest"],
    },
    author="Paweł Lenartowicz",
    description="Analytical and Monte Carlo Power Analysis",
)
