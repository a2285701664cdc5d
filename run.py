#!/usr/bin/env python3
"""
Main entry point for running the Casaora back office
"""

from casaora.main import create_app
import os

if __name__ == '__main__':
    config_name = os.environ.get('FLASK_ENV', 'development')

    app = create_app(config_name)

    print("Starting Casaora...")
    print("Access the API at: http://localhost:5001/api")
    print("\nPress CTRL+C to stop the server")

    app.run(
        host='0.0.0.0',
        port=5001,
        debug=config_name == 'development'
    )
