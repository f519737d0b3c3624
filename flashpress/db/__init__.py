"""Storage contract, entities and the memory and relational backends."""
