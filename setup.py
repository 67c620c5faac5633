"""
High-Frequency Price-Change Decomposition -- Package Setup

References:
    Rydberg, T.H. & Shephard, N. (2003). Dynamics of Trade-by-Trade Price
        Movements: Decomposition and Models. J. Financial Econometrics, 1(1).
    Tsay, R.S. (2010). Analysis of Financial Time Series, 3rd ed., Wiley.
"""
from setuptools import setup, find_packages

setup(
    name             = "tick-decomposition",
    version          = "1.0.0",
    description      = "Occurrence/direction/size decomposition of high-frequency "
                       "price changes with conditional CDF evaluation",
    packages         = find_packages(include=["tick_decomposition", "tick_decomposition.*"]),
    py_modules       = ["main"],
    python_requires  = ">=3.9",
    install_requires = [
        "numpy>=1.24.0",
        "scipy>=1.10.0",
        "pandas>=2.0.0",
        "statsmodels>=0.14.0",
    ],
    extras_require   = {
        "dev": ["pytest>=7.4.0"],
    },
    entry_points     = {
        "console_scripts": ["tick-decomposition = main:main"]
    },
    classifiers      = [
        "Programming Language :: Python :: 3",
        "Topic :: Office/Business :: Financial",
        "Topic :: Scientific/Engineering :: Information Analysis",
    ],
)
