"""Test suite for the parking slot index"""
