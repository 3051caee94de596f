import argparse
import sys
import os

# Add project root to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from api.auth import create_token


def main():
    parser = argparse.ArgumentParser(description="Mint a caller token for local testing.")
    parser.add_argument("user_id", help="User identifier to embed in the token")
    args = parser.parse_args()

    print(create_token(args.user_id))


if __name__ == "__main__":
    main()
