from setuptools import setup, find_packages

setup(
    name="phasefield_fracture",
    version="0.1.0",
    description="Active-set Newton phase-field solver for brittle and pressurized fracture",
    author="Phase-Field Fracture Team",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.8",
    install_requires=[
        "numpy>=1.20",
        "scipy>=1.12",
        "matplotlib>=3.4",
        "meshio>=5.0",
    ],
    extras_require={
        "dev": ["pytest>=6.0"],
    },
)
