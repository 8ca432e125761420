# ---

# dashboard_main.py (root level)
"""
Filter Dashboard - Main Entry Point

Run with: streamlit run dashboard_main.py
"""

import os

from cascade_filters.dashboard.app import main

if __name__ == "__main__":
    # Set up environment
    os.environ['STREAMLIT_THEME_BASE'] = 'light'

    # Run dashboard
    main()
