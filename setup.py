from setuptools import setup, find_packages

setup(
    name="ich_segmentation",
    version="0.1",
    packages=find_packages(exclude=["tests"]),
    py_modules=["run_prediction"],
    install_requires=[
        'numpy',
        'pandas',
        'SimpleITK',
        'scipy',
        'scikit-learn',
        'joblib',
        'tqdm'
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': ['ich-predict=run_prediction:main'],
    },
)
