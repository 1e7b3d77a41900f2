"""
Services: persistence boundary, status oracle, eligibility rules and the
registration engine, plus the participant / team / edition / event services
built on them.
"""
