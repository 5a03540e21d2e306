"""Core competition engine"""
