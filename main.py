#!/usr/bin/env python3
import os
import sys

# Ensure project root is in path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from PcsServer.main import run

if __name__ == "__main__":
    run()
