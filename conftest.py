"""
Root pytest configuration.
Switches settings to testing mode before any application module is imported.
"""
import os

# Set testing environment before importing app
os.environ["TESTING"] = "True"
os.environ["DEBUG"] = "False"
os.environ["EMAIL_VIA_CELERY"] = "False"
os.environ["BASE_CALLBACK_URL"] = "https://callbacks.example.com"
