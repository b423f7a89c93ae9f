"""Nest Cam HomeKit bridge"""
