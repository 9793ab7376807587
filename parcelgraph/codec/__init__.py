from .cid import bytes32_to_cid, decode_cid, encode_cid, hash_to_bytes

__all__ = ["bytes32_to_cid", "decode_cid", "encode_cid", "hash_to_bytes"]
