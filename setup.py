from setuptools import setup, find_packages

setup(
    name='rkode',  # Runge-Kutta ODE solvers: explicit pairs, backward Euler, Radau5
    version='0.1.0',
    description='Adaptive Runge-Kutta ODE solvers (explicit, backward Euler, Radau5) in PyTorch',
    package_dir={'': 'src'},
    packages=find_packages(where='src'),
    python_requires='>=3.10',
    install_requires=[
        'torch',
        'numpy',
        'scipy',
    ],
    extras_require={
        'petsc': ['petsc4py'],                # PETSc KSP linear-solver backend
        'test': ['pytest'],
    },
)
