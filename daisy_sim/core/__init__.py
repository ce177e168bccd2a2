"""Core components for the daisy chain simulation.

This module contains the chain registry, the token ring scheduler, the message
queue and the transmission engine, plus the Node, Link and Message types.
"""
