"""
Protocol Parser Module

This module formats requests for the cache endpoint and parses the lines it
sends back.
"""

from typing import Dict, Set

from .codec import decode_token, encode_token
from .commands import Command, CommandType, Response


class ProtocolParser:
    """
    Client-side parser for the cache endpoint's line protocol.

    Protocol Format:
        Request:  <COMMAND> [ARGS...]\n
        Response: <STATUS> [DATA]\n

    Commands:
        AUTH <mech> <qop> <realm> <user> <password>  -> OK authenticated | ERROR auth failed
        PUT <cache> <key> <value>                    -> OK stored
        GET <cache> <key>                            -> OK <value> | ERROR key not found
        REMOVE <cache> <key>                         -> OK removed | ERROR key not found
        TOPOLOGY <cache>                             -> OK <addr>=<seg,...> ...

    Cache names, keys, values and every AUTH field are codec tokens.
    """

    def format_request(self, command: Command) -> str:
        """
        Format a Command into a protocol line.

        Returns:
            Request string WITH trailing newline.

        Raises:
            ValueError: If the command is missing required fields
        """
        if not command.is_valid:
            raise ValueError(f"invalid {command.type.name} command")

        cache = encode_token(command.cache)

        if command.type == CommandType.AUTH:
            mechanism, qop, realm, username, password = command.args
            fields = " ".join(encode_token(f) for f in (mechanism, qop, realm, username, password))
            return f"AUTH {fields}\n"
        if command.type == CommandType.PUT:
            return f"PUT {cache} {encode_token(command.key)} {encode_token(command.value)}\n"
        if command.type == CommandType.GET:
            return f"GET {cache} {encode_token(command.key)}\n"
        if command.type == CommandType.REMOVE:
            return f"REMOVE {cache} {encode_token(command.key)}\n"
        return f"TOPOLOGY {cache}\n"

    def parse_response(self, line: str, command_type: CommandType) -> Response:
        """
        Parse a response line for a request of the given type.

        Args:
            line: Raw response line (may include trailing newline)
            command_type: Type of the request the line answers

        Returns:
            Parsed Response. For GET the value is decoded; for TOPOLOGY the
            value is the parsed topology mapping.

        Raises:
            ValueError: If the line is not a well-formed response
        """
        parts = line.strip().split(None, 1)
        if not parts:
            raise ValueError("empty response")

        status = parts[0].upper()
        body = parts[1] if len(parts) > 1 else ""

        if status == "ERROR":
            return Response.error(body.lower())
        if status != "OK":
            raise ValueError(f"unknown status: {parts[0]!r}")

        if command_type == CommandType.GET:
            return Response.success(value=decode_token(body))
        if command_type == CommandType.TOPOLOGY:
            return Response.success(value=self.parse_topology(body))
        return Response.success(message=body.lower())

    def parse_topology(self, body: str) -> Dict[str, Set[int]]:
        """
        Parse a topology body into a member address -> segment ids mapping.

        Example:
            >>> ProtocolParser().parse_topology("10.0.0.1:11222=0,1 10.0.0.2:11222=2")
            {'10.0.0.1:11222': {0, 1}, '10.0.0.2:11222': {2}}
        """
        topology: Dict[str, Set[int]] = {}
        for entry in body.split():
            address, sep, segments = entry.rpartition("=")
            if not sep or not address:
                raise ValueError(f"malformed topology entry: {entry!r}")
            topology[address] = {int(s) for s in segments.split(",") if s}
        return topology
