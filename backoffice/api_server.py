"""
Back office API server.

Entry point that creates the Flask app via the application factory. Any
WSGI server can serve ``backoffice.api_server:app``; running this module
directly starts the Werkzeug development server.
"""

import sys
from pathlib import Path

# Ensure project root is on the path
sys.path.insert(0, str(Path(__file__).parent.parent))  # Project root

from backoffice.app import create_app  # noqa: E402

# Create the application
app = create_app()


if __name__ == '__main__':
    import os
    import logging

    logger = logging.getLogger('backoffice')

    port = int(os.getenv('PORT', '5001'))
    logger.info(f"Starting back office API on port {port}...")
    logger.info(f"  - Log format: {os.getenv('LOG_FORMAT', 'json')}")
    logger.info(f"  - Log level: {os.getenv('LOG_LEVEL', 'INFO')}")

    app.run(host=os.getenv('HOST', '127.0.0.1'), port=port, debug=False, use_reloader=False)
