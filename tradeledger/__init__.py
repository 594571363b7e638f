"""Trade ledger: batch ingested trades to IPFS and commit their CIDs on-chain."""
