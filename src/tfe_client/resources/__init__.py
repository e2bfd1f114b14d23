"""Resource modules: thin async functions over TFEClient.execute."""
