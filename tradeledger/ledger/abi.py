"""Interface of the on-chain trade batch registry."""

COMMIT_FUNCTION = "intentBatchEmit"
COMMIT_EVENT = "IntentsBatchIPFS"

TRADE_STORAGE_ABI = [
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "internalType": "uint256", "name": "startTime", "type": "uint256"},
            {"indexed": True, "internalType": "uint256", "name": "endTime", "type": "uint256"},
            {"indexed": False, "internalType": "string", "name": "cid", "type": "string"},
        ],
        "name": COMMIT_EVENT,
        "type": "event",
    },
    {
        "inputs": [
            {"internalType": "uint256", "name": "startTime", "type": "uint256"},
            {"internalType": "uint256", "name": "endTime", "type": "uint256"},
            {"internalType": "string", "name": "cid", "type": "string"},
        ],
        "name": COMMIT_FUNCTION,
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]
