"""
Pytest configuration for Django tests.
"""
import os

# Set the Django settings module (pytest-django configures Django from it)
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'giftshop.settings')
