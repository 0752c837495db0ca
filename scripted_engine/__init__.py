"""
scripted-engine: bank documents with cross-bank reference resolution.
"""
