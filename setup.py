from setuptools import setup, find_packages

setup(
    name = 'libloadorder',
    description = 'Compute the load order of ELF shared libraries and their dependencies',
    author = 'Andreas Ziegler',
    author_email = 'andreas.ziegler@fau.de',
    version = '0.1',
    license = 'GPL-3.0',
    packages = find_packages(exclude=['test', 'test.*']),
    zip_safe = False,
    install_requires = [
        'pyelftools'
    ],
    extras_require = {
        'test': ['pytest']
    }
)
