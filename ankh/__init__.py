"""Another Kubernetes Helper.

Templates Helm charts declared in an Ankh file and drives kubectl against
the contexts and environments defined in merged Ankh configuration.
"""

__version__ = "2.0.0"
