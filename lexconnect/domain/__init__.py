"""Domain modules for LexConnect"""
