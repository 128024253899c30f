from setuptools import find_packages, setup

setup(
    name='NxIsochrone',
    packages=find_packages(include=['nxisochrone']),
    python_requires='>=3.9',
    install_requires=[
        "geopandas>=0.14.3",
        "networkx>=3.2.1",
        "numpy>=1.26.4",
        "pandas>=2.2.0",
        "pyproj>=3.6.1",
        "Shapely>=2.0.3",
    ],
    extras_require={
        "test": ["pytest>=8.0.1"],
    },
    entry_points={
        "console_scripts": ["nxisochrone=nxisochrone.cli:main"],
    },
    version='0.1.0',
    description='Commute isochrones over public transit networks built from GTFS feeds',
    author='chingiztob',
)

# python setup.py sdist bdist_wheel

# twine upload dist/*
