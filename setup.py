#!/usr/bin/env python3


def main():
    from setuptools import find_packages, setup

    version_dict = {}
    init_filename = "pamass/version.py"
    exec(compile(open(init_filename).read(), init_filename, "exec"),
            version_dict)

    setup(
        name="pamass",
        version=version_dict["VERSION_TEXT"],
        description=(
            "Matrix-free vector mass operators on tensor-product elements, "
            "on heterogeneous hardware"
        ),
        long_description=open("README.rst").read(),
        license="MIT",
        classifiers=[
            "Development Status :: 3 - Alpha",
            "Intended Audience :: Developers",
            "Intended Audience :: Science/Research",
            "License :: OSI Approved :: MIT License",
            "Natural Language :: English",
            "Programming Language :: Python",
            "Programming Language :: Python :: 3",
            "Topic :: Scientific/Engineering",
            "Topic :: Scientific/Engineering :: Mathematics",
            "Topic :: Software Development :: Libraries",
        ],
        packages=find_packages(include=["pamass", "pamass.*"]),
        python_requires="~=3.10",
        install_requires=[
            "numpy",
            "pytest>=2.3",
            "pytools>=2024.1.3",
            "modepy>=2013.3",
            "arraycontext>=2021.1",
            "meshmode>=2020.2",
            "pyopencl>=2013.1",
            "pytato>=2023.1",
        ],
    )


if __name__ == "__main__":
    main()
