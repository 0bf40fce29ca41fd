import pytest

from filterspector.models import AggregatedEntry, Direction, Frame

TRACE_HEADER = "TimestampEpoch;BusChannel;ID;IDE;DLC;DataLength;Dir;EDL;BRS;ESI;RTR;DataBytes"

ENGINE_DBC = '''VERSION ""

BU_: ECU1

BO_ 100 EngineData: 8 ECU1
 SG_ EngineSpeed : 0|16@1+ (0.125,0) [0|8031.875] "rpm" Vector__XXX
 SG_ EngineTemp : 16|8@1+ (1,-40) [-40|215] "degC" Vector__XXX

BO_ 2566844926 EEC1: 8 Vector__XXX
 SG_ EngineSpeedJ : 24|16@1+ (0.125,0) [0|8031.875] "rpm" Vector__XXX

CM_ BO_ 100 "Engine \\"core\\" data";
BA_DEF_ "ProtocolType" STRING ;
BA_ "ProtocolType" "J1939";
'''


def trace_line(ts, channel, id_hex, ide=0, length=8, direction=0, rtr=0, data="00 11 22 33 44 55 66 77"):
    return f"{ts};{channel};{id_hex};{ide};{length};{length};{direction};0;0;0;{rtr};{data}"


def trace_text(*lines):
    return "\n".join((TRACE_HEADER,) + lines) + "\n"


@pytest.fixture
def make_frame():
    def _make(identifier, channel=1, timestamp=0.0, is_extended=False, data_length=8,
              payload_hex="0011223344556677", remote_request=False, direction=Direction.RX):
        return Frame(
            timestamp=timestamp,
            channel=channel,
            identifier=identifier,
            is_extended=is_extended,
            dlc=data_length,
            data_length=data_length,
            direction=direction,
            remote_request=remote_request,
            payload_hex=payload_hex,
        )
    return _make


@pytest.fixture
def make_entry():
    def _make(identifier, channel=1, is_extended=None, **kwargs):
        if is_extended is None:
            is_extended = identifier > 0x7FF
        return AggregatedEntry(channel=channel, identifier=identifier, is_extended=is_extended, **kwargs)
    return _make


@pytest.fixture
def engine_dbc():
    return ENGINE_DBC
