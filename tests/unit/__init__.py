"""Unit tests for the parking slot index"""
