"""
Simple runner - just run: python run_harvester.py

Usage:
    python run_harvester.py                      # Crawl with HARVESTER_USERNAME/PASSWORD from .env
    python run_harvester.py USER PASS            # Credentials as arguments
    python run_harvester.py USER PASS 300 305    # Only roster positions 300-305
    python run_harvester.py --visible            # Show browser window
"""
import sys

from harvester.main import main


if __name__ == '__main__':
    sys.exit(main())
