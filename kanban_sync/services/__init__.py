# Client services: store, mutation engine, remote operations, coordinator, synchronizer
