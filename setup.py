"""Setup script for threebody-sim package."""

from setuptools import setup, find_packages
from pathlib import Path

readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

# One extra per optional array backend, matching the names list_available_backends() reports.
BACKEND_EXTRAS = {
    "jax": ["jax>=0.4.0", "jaxlib>=0.4.0"],
    "pytorch": ["torch>=1.10.0"],
    "cupy": ["cupy>=10.0.0"],
}

extras = dict(BACKEND_EXTRAS)
extras["gpu"] = sorted({req for reqs in BACKEND_EXTRAS.values() for req in reqs})
extras["test"] = ["pytest>=6.0.0", "pytest-cov>=2.12.0"]
extras["dev"] = extras["test"] + ["black>=21.0.0", "flake8>=3.9.0"]

setup(
    name="threebody-sim",
    version="0.1.0",
    description="Small-N gravity simulation core with inline, worker-thread and grid-kernel step backends",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "numpy>=1.20.0",
        "pyyaml>=5.4.0",
    ],
    extras_require=extras,
    entry_points={
        "console_scripts": [
            "threebody-sim=threebody_sim.cli.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "Programming Language :: Python :: 3",
        "Topic :: Scientific/Engineering :: Physics",
    ],
)
