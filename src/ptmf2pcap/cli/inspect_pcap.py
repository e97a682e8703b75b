"""
CLI command for inspecting converted PCAP files.

Reads the capture back with scapy and prints one line per packet, which is
enough to sanity-check a conversion without opening a GUI analyzer.
"""
import json
from typing import Any, Dict, Optional

import click
from scapy.layers.inet import IP, TCP, UDP
from scapy.layers.l2 import Ether
from scapy.layers.sctp import SCTP, SCTPChunkData
from scapy.packet import Packet
from scapy.utils import PcapReader

_INFO_LENGTH = 48


def _payload_bytes(packet: Packet) -> bytes:
    if SCTPChunkData in packet:
        return bytes(packet[SCTPChunkData].data)
    for layer_cls in (TCP, UDP):
        if layer_cls in packet:
            return bytes(packet[layer_cls].payload)
    return b""


def _info(payload: bytes) -> str:
    """First line of a text payload, e.g. a SIP request line or a syslog label."""
    first_line = payload.split(b"\n", 1)[0].rstrip(b"\r")
    text = first_line.decode("latin-1")
    if not text.isprintable():
        return f"{len(payload)} bytes"
    if len(text) > _INFO_LENGTH:
        return text[:_INFO_LENGTH - 3] + "..."
    return text


def summarize_packet(packet: Packet, packet_id: int = 0) -> Dict[str, Any]:
    """Flatten the layers of a reconstructed packet into a dict."""
    stack = []
    summary: Dict[str, Any] = {
        "id": packet_id,
        "time": float(packet.time),
        "length": len(packet),
        "src": None,
        "dst": None,
        "sport": None,
        "dport": None,
        "proto": None,
        "info": "",
    }

    if Ether in packet:
        stack.append("ETH")
    if IP in packet:
        stack.append("IP4")
        ip = packet[IP]
        summary["src"] = ip.src
        summary["dst"] = ip.dst
        for layer_cls, name in ((TCP, "TCP"), (UDP, "UDP"), (SCTP, "SCTP")):
            if layer_cls in ip:
                stack.append(name)
                summary["proto"] = name
                summary["sport"] = ip[layer_cls].sport
                summary["dport"] = ip[layer_cls].dport
                break
        summary["info"] = _info(_payload_bytes(packet))

    summary["stack"] = "/".join(stack) if stack else "RAW"
    return summary


def _format_endpoint(address: Optional[str], port: Optional[int]) -> str:
    if address is None:
        return "-"
    if port is None:
        return address
    return f"{address}:{port}"


@click.command()
@click.argument("filepath", type=click.Path(exists=True, dir_okay=False))
@click.option("--limit", "limit", type=int, default=50, show_default=True,
              help="Max packets to show (0 = no limit)")
@click.option("--format", "format", type=click.Choice(["table", "jsonl"]),
              default="table", show_default=True, help="Output format")
def inspect(filepath: str, limit: int, format: str):
    """
    Show the packets of a PCAP file produced by ptmf2pcap.

    Example:
      ptmf2pcap-inspect trace.pcap --limit 20
    """
    try:
        with PcapReader(filepath) as reader:
            if format == "table":
                click.echo("ID    Stack          Src                    Dst                    Len    Info")
                click.echo("-" * 100)

            count = 0
            for packet in reader:
                count += 1
                summary = summarize_packet(packet, count)
                if format == "table":
                    src = _format_endpoint(summary["src"], summary["sport"])
                    dst = _format_endpoint(summary["dst"], summary["dport"])
                    click.echo(
                        f"{count:<5} {summary['stack']:<14} {src:<22} {dst:<22} "
                        f"{summary['length']:<6} {summary['info']}"
                    )
                else:
                    click.echo(json.dumps(summary, separators=(",", ":"), ensure_ascii=True))

                if limit > 0 and count >= limit:
                    break
    except Exception as e:
        raise click.ClickException(str(e))


if __name__ == "__main__":
    inspect()
