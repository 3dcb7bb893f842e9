"""
Module level switches for debug output of the translator.
"""

DEBUG = False
DEBUG_EMIT = False
