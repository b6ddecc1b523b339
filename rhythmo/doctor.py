#!/usr/bin/env python3
"""
Rhythmo setup check.
Verifies the runtime environment and writes a starter config.json.
"""

import importlib.util
import json
import os
import shutil
import subprocess
import sys

from rhythmo.config import DEFAULT_CONFIG, load_config

# import name -> package name on the index
REQUIRED_PACKAGES = {
    "discord": "discord.py",
    "nacl": "PyNaCl",
    "yt_dlp": "yt-dlp",
}

def check_python_version(version=None):
    """Check if Python version is compatible."""
    version = version or sys.version_info
    if version[0] < 3 or (version[0] == 3 and version[1] < 9):
        print("❌ Python 3.9+ is required!")
        print(f"   Current version: {version[0]}.{version[1]}")
        return False
    print(f"✅ Python version: {version[0]}.{version[1]}")
    return True

def check_ffmpeg():
    """Check if FFmpeg is installed."""
    path = shutil.which("ffmpeg")
    if path:
        try:
            result = subprocess.run([path, '-version'], capture_output=True, text=True, timeout=5)
            if result.returncode == 0:
                print("✅ FFmpeg is installed")
                return True
        except (subprocess.TimeoutExpired, OSError):
            pass

    print("⚠️  FFmpeg not found!")
    print("   Please install FFmpeg from https://ffmpeg.org/download.html")
    return False

def check_dependencies():
    """Return the index names of required packages that cannot be imported."""
    missing = []
    for module, package in REQUIRED_PACKAGES.items():
        if importlib.util.find_spec(module) is None:
            missing.append(package)
            print(f"❌ {package} is missing")
        else:
            print(f"✅ {package} is installed")

    if missing:
        print("\n📦 To install missing packages, run:")
        print(f"   pip install {' '.join(missing)}")
    return missing

def ensure_config(path='config.json'):
    """Write a default config.json when none exists. True if one was created."""
    if os.path.exists(path):
        cfg = load_config(path)
        print(f"✅ {path} found (prefix '{cfg['prefix']}')")
        if not cfg.get("token") and not os.getenv("DISCORD_TOKEN"):
            print("⚠️  No token: set DISCORD_TOKEN or fill in 'token'")
        return False
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(DEFAULT_CONFIG, f, ensure_ascii=False, indent=2)
    print(f"✅ {path} created, add your bot token to it (or set DISCORD_TOKEN)")
    return True

def main():
    """Main setup function."""
    print("🎵 Rhythmo Music Bot - Setup Check")
    print("=" * 60)

    all_good = True

    print("\n1️⃣ Checking Python version...")
    if not check_python_version():
        all_good = False

    print("\n2️⃣ Checking FFmpeg...")
    if not check_ffmpeg():
        all_good = False

    print("\n3️⃣ Checking Python dependencies...")
    if check_dependencies():
        all_good = False

    print("\n4️⃣ Checking config.json...")
    ensure_config(os.getenv("RHYTHMO_CONFIG", "config.json"))

    print("\n" + "=" * 60)
    if all_good:
        print("🎉 All set! Start the bot with: python bot.py")
        return 0
    print("⚠️  Fix the issues above, then run this check again.")
    return 1

if __name__ == "__main__":
    sys.exit(main())
