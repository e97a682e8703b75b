from setuptools import setup, find_packages

setup(
    name="ptmf2pcap",
    version="1.0.0",
    description="Convert PTMF frame traces into PCAP files",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "click>=8.0.0",
        "scapy>=2.5.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "ptmf2pcap=ptmf2pcap.cli.main:cli",
            "ptmf2pcap-inspect=ptmf2pcap.cli.inspect_pcap:inspect",
        ],
    },
    python_requires=">=3.8",
)
