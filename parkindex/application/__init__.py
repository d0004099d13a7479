"""Application layer: parking use cases, session and menu commands"""
