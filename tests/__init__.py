"""
Test suite for the kittens application.
"""
