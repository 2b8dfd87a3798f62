#!/usr/bin/env python3
"""
Dashboard entrypoint - terminal activity log with undo/redo.
"""

import os
import sys
from pathlib import Path

# Load environment variables from .env file first
import dotenv
dotenv.load_dotenv()

# Add project root to path for imports (shopagent/ and tui/ are both in project root)
sys.path.insert(0, str(Path(__file__).parent.parent))


def main():
    """Validate store credentials and launch the TUI."""
    try:
        if not os.getenv("SHOPIFY_STORE_DOMAIN") or not os.getenv("SHOPIFY_ACCESS_TOKEN"):
            print("ℹ️  Store credentials not set; history is read-only.")
            print("   Set SHOPIFY_STORE_DOMAIN and SHOPIFY_ACCESS_TOKEN to enable undo/redo.")

        try:
            from tui.main import main as tui_main
        except ImportError as e:
            print(f"❌ Failed to import TUI dashboard: {e}")
            print("   Make sure textual is installed: pip install textual")
            return 1

        tui_main()
        return 0

    except KeyboardInterrupt:
        print("\nℹ️  Dashboard interrupted")
        return 0
    except Exception as e:
        print(f"❌ Dashboard startup failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
