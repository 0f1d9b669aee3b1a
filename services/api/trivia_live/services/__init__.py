"""
Game services: grading, scoring, state machine and authoring operations.
"""
