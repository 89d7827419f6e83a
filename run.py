#!/usr/bin/env python
"""
Run script for the Cloudy Calculator.
Starts the web server, or the CLI when arguments are given.
"""

from cloudy_calc.app import main

if __name__ == "__main__":
    main()
