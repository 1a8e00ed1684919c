"""
Executed when running: python -m hazels
"""
from hazels.main import main

if __name__ == "__main__":
    main()
