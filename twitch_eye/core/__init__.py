"""Core infrastructure - configuration, logging, errors and dependencies"""
