"""Setuptools magic to install flanker."""
import glob
import os

from setuptools import setup, find_packages


def read(fname):
    """Read a file from the current directory."""
    with open(os.path.join(os.path.dirname(__file__), fname), encoding="utf-8") as handle:
        return handle.read()


long_description = read('README.md')

install_requires = [
    'biopython >= 1.80',
]

tests_require = [
    'pytest >= 7.2.0',
    'coverage',
    'helperlibs >= 0.2.1',
    'pylint',
    'mypy',  # for consistent type checking
]


def read_version():
    """Read the version from the appropriate place in the library."""
    with open(os.path.join('flanker', 'main.py'), 'r', encoding="utf-8") as handle:
        for line in handle:
            if line.startswith('__version__'):
                return line.split('=')[-1].strip().strip('"')
    raise ValueError("unable to find version")


def find_data_files():
    """Setuptools package_data globbing is stupid, so make this work ourselves."""
    data_files = []
    for pathname in glob.glob("flanker/**/*.cfg", recursive=True):
        if '__pycache__' in pathname:
            continue
        pathname = glob.escape(pathname)
        pathname = pathname[len("flanker/"):]
        data_files.append(pathname)
    return data_files


setup(
    name="flanker",
    python_requires='>=3.9',
    version=read_version(),
    packages=find_packages(exclude=["*.tests", "*.tests.*", "tests.*", "tests"]),
    package_data={
        'flanker': find_data_files(),
    },
    description='Flanking region consolidation and signature family clustering for annotated genomes.',
    long_description=long_description,
    long_description_content_type='text/markdown',
    install_requires=install_requires,
    tests_require=tests_require,
    license='GNU Affero General Public License v3 or later (AGPLv3+)',
    classifiers=[
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Science/Research',
        'Topic :: Scientific/Engineering :: Bio-Informatics',
        'License :: OSI Approved :: GNU Affero General Public License v3 or later (AGPLv3+)',
        'Operating System :: OS Independent',
    ],
    extras_require={
        'testing': tests_require,
    },
)
