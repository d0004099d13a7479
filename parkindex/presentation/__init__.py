"""Presentation layer: console menu"""
