#!/usr/bin/env python
"""
Run ptmf2pcap from a source checkout without installing it.

    python run.py -f trace.ptmf trace.pcap
"""
import os
import sys

project_root = os.path.dirname(os.path.abspath(__file__))
src_path = os.path.join(project_root, 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from ptmf2pcap.cli.main import cli  # noqa: E402

if __name__ == "__main__":
    cli()
