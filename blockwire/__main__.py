from __future__ import annotations
from blockwire.cli import main

if __name__ == "__main__":
    main()
