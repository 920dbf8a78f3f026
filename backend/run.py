#!/usr/bin/env python3
"""
GeoPlaces Backend - Run Script
This script starts the FastAPI places service
"""

import os
import sys
import subprocess
import socket
from pathlib import Path
from urllib.parse import urlparse

from dotenv import dotenv_values

def print_colored(message, color="blue"):
    """Print colored output"""
    colors = {
        "red": "\033[91m",
        "green": "\033[92m",
        "yellow": "\033[93m",
        "blue": "\033[94m",
        "reset": "\033[0m"
    }
    print(f"{colors.get(color, '')}{message}{colors['reset']}")

def check_file_exists(filepath, error_message):
    """Check if a file exists"""
    if not Path(filepath).exists():
        print_colored(f"❌ Error: {error_message}", "red")
        sys.exit(1)

def check_port_open(host, port):
    """Check if a port is open"""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.settimeout(2)
    result = sock.connect_ex((host, port))
    sock.close()
    return result == 0

def load_env(env_path):
    """.env values overlaid by the process environment, as the app's Settings sees them"""
    values = dotenv_values(env_path) if Path(env_path).exists() else {}
    return {**values, **os.environ}

def main():
    print_colored("🚀 Starting GeoPlaces Backend...", "blue")

    # Check if we're in the backend directory
    check_file_exists("geoplaces/main.py", "geoplaces/main.py not found. Please run this script from the backend directory.")

    env_path = Path("../.env") if Path("../.env").exists() else Path(".env")
    env = load_env(env_path)
    if not env_path.exists():
        print_colored("⚠️  Warning: no .env file found, using defaults and the process environment.", "yellow")
        print("Useful variables:")
        print("  STORAGE_MODE=local            # or mongodb")
        print("  MONGO_URI=mongodb://localhost:27017")
        print("  GOOGLE_MAPS_API_KEY=your_api_key_here")
        print("  LOGGER=20")

    if not env.get("GOOGLE_MAPS_API_KEY"):
        print_colored("⚠️  GOOGLE_MAPS_API_KEY is not set: refreshes will fail and only cached places can be served.", "yellow")

    # Check if MongoDB is running (only in mongodb mode)
    if env.get("STORAGE_MODE", "local") == "mongodb":
        print_colored("🔍 Checking MongoDB connection...", "blue")
        uri = urlparse(env.get("MONGO_URI", "mongodb://localhost:27017"))
        host, port = uri.hostname or "localhost", uri.port or 27017
        if not check_port_open(host, port):
            print_colored(f"⚠️  Warning: MongoDB doesn't appear to be running on {host}:{port}", "yellow")
            print("Please start MongoDB first:")
            print("  - Using Docker: docker run -d -p 27017:27017 mongo:7.0")
            print("  - Using local installation: mongod --dbpath /path/to/data")
            print()
            response = input("Continue anyway? (y/N): ").strip().lower()
            if response != 'y':
                sys.exit(1)

    # Check if virtual environment is activated
    if not os.environ.get('VIRTUAL_ENV'):
        print_colored("⚠️  Virtual environment not activated.", "yellow")
        print("Please activate your virtual environment first:")
        print("  source venv/bin/activate  # On macOS/Linux")
        print("  venv\\Scripts\\activate     # On Windows")
        sys.exit(1)

    # Check if dependencies are installed
    print_colored("🔍 Checking dependencies...", "blue")
    try:
        import fastapi
        import uvicorn
    except ImportError:
        print_colored("❌ Dependencies not installed.", "red")
        print("Installing dependencies...")
        subprocess.run([sys.executable, "-m", "pip", "install", "-e", ".."], check=True)

    # Start the server
    print_colored("✅ All checks passed!", "green")
    print_colored("🌐 Starting Uvicorn server...", "blue")
    print("📍 Backend will be available at: http://localhost:8000")
    print("📍 API Health check: http://localhost:8000/health")
    print("📍 API Documentation: http://localhost:8000/docs")
    print()
    print("Press Ctrl+C to stop the server")
    print()

    # Run uvicorn with auto-reload for development
    try:
        subprocess.run([
            sys.executable, "-m", "uvicorn",
            "geoplaces.main:app",
            "--reload",
            "--host", "0.0.0.0",
            "--port", "8000"
        ], check=True)
    except KeyboardInterrupt:
        print_colored("\n👋 Backend server stopped.", "yellow")
    except subprocess.CalledProcessError as e:
        print_colored(f"\n❌ Error starting server: {e}", "red")
        sys.exit(1)

if __name__ == "__main__":
    main()
