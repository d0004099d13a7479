"""Domain layer: slot records and the balanced slot index"""
