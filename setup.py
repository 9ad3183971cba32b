import os

from setuptools import find_packages, setup

with open(os.path.join(os.path.abspath(os.path.dirname(__file__)), "version.txt")) as f:
    version = f.read().rstrip()

install_requires = ["aiohttp<3.14", "attrs", "jsonschema", "PyYAML"]

tests_require = ["aioresponses", "pytest", "pytest-asyncio", "pytest-mock"]

setup(
    name="codesignscript",
    version=version,
    description="Release archive code signing script",
    author="Mozilla Release Engineering",
    author_email="release+python@mozilla.com",
    package_data={"codesignscript": ["data/*"]},
    packages=find_packages("src"),
    package_dir={"": "src"},
    include_package_data=True,
    zip_safe=False,
    entry_points={"console_scripts": ["codesignscript = codesignscript.script:main"]},
    license="MPL2",
    python_requires=">=3.11.4",
    install_requires=install_requires,
    extras_require={"test": tests_require},
)
