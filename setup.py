import setuptools
from pathlib import Path
##############################################

def _read_version() -> str:
    about: dict = {}
    version_path = Path(__file__).parent / "vidger" / "_version.py"
    exec(version_path.read_text(encoding="utf-8"), about)
    return about["__version__"]

with open("README.md", "r") as fh:
    long_description = fh.read()

with open("requirements.txt", "r") as fh:
    install_requires = fh.read()

setuptools.setup(
     name='vidger',
     version=_read_version(),
     description="Box and volcano plots for Cuffdiff, DESeq2 and edgeR differential expression results",
     long_description_content_type="text/markdown",
     long_description=long_description,
     install_requires = install_requires,
     extras_require={
         "deseq": ["pydeseq2>=0.4"],
         "edger": ["inmoose"],
         "test": ["pytest"],
     },
     packages=setuptools.find_packages(exclude=["tests", "tests.*"]),
     python_requires=">=3.9",
     classifiers=[
         "Programming Language :: Python :: 3",
         "Operating System :: OS Independent",
     ],
 )
