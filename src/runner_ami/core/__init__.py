"""Core runner AMI modules: constants, policy documents, models and AWS managers."""
