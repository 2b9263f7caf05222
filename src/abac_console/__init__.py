"""abac-console: ABAC policy authoring and decision audit console.

Author policies for the multi-tenant laundry platform, evaluate them with a
compatible engine, and inspect or export the decision audit trail.
"""

__version__ = "0.1.0"
