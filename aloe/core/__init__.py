"""Auction engine: encoding, configuration, storage and orchestration"""
