"""
Application services for the checkout lifecycle.
"""
