"""RuleForge command line interface."""
