"""
Provider adapters.

One module per backend family. Adapters are pure translators between the
canonical message model and a provider's wire format.
"""
