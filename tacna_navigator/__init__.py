"""
Tacna Transit Navigator — admin-managed route blockages feeding
LLM-suggested, directions-traced transit paths for Tacna, Peru.
"""
