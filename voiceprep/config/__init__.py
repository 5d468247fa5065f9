"""Configuration management for VoicePrep."""
