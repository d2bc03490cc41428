"""inv command line"""
