"""
ExamCraft command line: python -m app {new,validate,preview,render}
"""

import sys
from app.cli import main

if __name__ == "__main__":
    sys.exit(main())
