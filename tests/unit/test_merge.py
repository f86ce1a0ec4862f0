import warnings

import pytest

from timingmap import (
    merge,
    merge_with_report,
    classify,
    normalize_name,
    MergeOptions,
    MergeReport,
    CellKind,
    NetlistModel,
    Module,
    Instance,
    Connection,
    TimingModel,
    TimingRecord,
    PathDelay,
    TimingCheck,
)
from timingmap.merge import policies


def netlist_of(*instances: Instance) -> NetlistModel:
    return NetlistModel(modules={"top": Module(name="top", instances=list(instances))})


def dff(name: str = "ff1") -> Instance:
    return Instance(
        name=name,
        type="DFF",
        connections=[Connection("D", "d"), Connection("Q", "q"), Connection("clock", "clk")],
    )


def wire(name: str = "w1") -> Instance:
    return Instance(
        name=name,
        type="fpga_interconnect",
        connections=[
            Connection("datain", "a"),
            Connection("dataout", "b"),
            Connection("aux", "c"),
        ],
    )


def iopath(delay: float) -> PathDelay:
    return PathDelay(kind="IOPATH", input="a", output="y", rise=delay, fall=delay, delay=delay)


def checks():
    return [
        TimingCheck(kind="SETUP", ports=["D", "posedge clock"], values=[-46.0]),
        TimingCheck(kind="HOLD", ports=["D", "posedge clock"], values=[20.0]),
    ]


def only_instance(netlist: NetlistModel) -> Instance:
    ((_, instance),) = netlist.all_instances()
    return instance


def test_inputs_unchanged():
    netlist = netlist_of(dff(), wire())
    timing = TimingModel(
        instances=[
            TimingRecord("ff1", "DFF", [iopath(3.0)], checks()),
            TimingRecord("w1", "fpga_interconnect", [iopath(5.0)]),
        ]
    )
    netlist_before = netlist.clone()
    timing_before = timing.clone()

    result = merge(netlist, timing)

    assert netlist == netlist_before
    assert timing == timing_before
    assert result != netlist
    # No lists or records shared between the result and the inputs
    ff1 = result.modules["top"].instances[0]
    assert ff1.delays == timing.instances[0].delays
    assert ff1.delays is not timing.instances[0].delays
    assert ff1.delays[0] is not timing.instances[0].delays[0]
    assert ff1.timing_checks is not timing.instances[0].timing_checks
    assert ff1.connections is not netlist.modules["top"].instances[0].connections


def test_result_is_a_full_copy():
    netlist = netlist_of(dff())
    result = merge(netlist, TimingModel())
    assert result == netlist
    assert result is not netlist
    assert result.modules["top"] is not netlist.modules["top"]


@pytest.mark.parametrize("name", ["ff1", "  ff1  ", "ff1\n", "\tff1"])
def test_names_normalized(name: str):
    timing = TimingModel(instances=[TimingRecord(name, "DFF", 3.0)])
    assert only_instance(merge(netlist_of(dff()), timing)).delays == 3.0


def test_netlist_names_normalized():
    timing = TimingModel(instances=[TimingRecord("ff1", "DFF", 3.0)])
    assert only_instance(merge(netlist_of(dff(" ff1 ")), timing)).delays == 3.0


def test_normalize_name():
    assert normalize_name("  a/b  ") == "a/b"
    assert normalize_name("a b") == "a b"


def test_last_record_wins():
    timing = TimingModel(
        instances=[
            TimingRecord("ff1", "DFF", 1.0),
            TimingRecord("ff1", "DFF", 2.0),
        ]
    )
    assert only_instance(merge(netlist_of(dff()), timing)).delays == 2.0


def test_unmatched_instance():
    timing = TimingModel(instances=[TimingRecord("other", "DFF", 3.0, checks())])
    result, report = merge_with_report(netlist_of(dff()), timing)
    ff1 = only_instance(result)
    assert ff1.delays is None
    assert ff1.timing_checks is None
    assert all(c.delay is None for c in ff1.connections)
    assert report == MergeReport(matched=[], unmatched=["ff1"], unused=["other"], unsupported=[])


def test_interconnect_fans_out_first_delay():
    timing = TimingModel(
        instances=[TimingRecord("w1", "fpga_interconnect", [iopath(5.0), iopath(9.0)])]
    )
    w1 = only_instance(merge(netlist_of(wire()), timing))
    assert [c.delay for c in w1.connections] == [5.0, 5.0, 5.0]
    assert w1.delays is None
    assert w1.timing_checks is None


def test_interconnect_scalar():
    timing = TimingModel(instances=[TimingRecord("w1", "fpga_interconnect", 7.0)])
    w1 = only_instance(merge(netlist_of(wire()), timing))
    assert [c.delay for c in w1.connections] == [7.0, 7.0, 7.0]


def test_interconnect_without_delays():
    timing = TimingModel(instances=[TimingRecord("w1", "fpga_interconnect", [])])
    w1 = only_instance(merge(netlist_of(wire()), timing))
    assert [c.delay for c in w1.connections] == [None, None, None]


def test_interconnect_selected_by_instance_type():
    # The record's own cell type plays no part for interconnect
    timing = TimingModel(instances=[TimingRecord("w1", "SOMETHING_ELSE", 4.0)])
    w1 = only_instance(merge(netlist_of(wire()), timing))
    assert [c.delay for c in w1.connections] == [4.0, 4.0, 4.0]


def test_sequential():
    timing = TimingModel(instances=[TimingRecord("ff1", "DFF", 3.0, checks())])
    ff1 = only_instance(merge(netlist_of(dff()), timing))
    assert ff1.delays == 3.0
    assert ff1.timing_checks == checks()
    assert all(c.delay is None for c in ff1.connections)


def test_sequential_path_delays():
    timing = TimingModel(instances=[TimingRecord("ff1", "DFF", [iopath(3.0)], [])])
    ff1 = only_instance(merge(netlist_of(dff()), timing))
    assert ff1.delays == [iopath(3.0)]
    assert ff1.timing_checks == []


def test_lookup_table_drops_checks():
    lut = Instance(name="lut1", type="LUT_K", connections=[Connection("out", "y")])
    timing = TimingModel(instances=[TimingRecord("lut1", "LUT_K", [iopath(235.0)], checks())])
    result = only_instance(merge(netlist_of(lut), timing))
    assert result.delays == [iopath(235.0)]
    assert result.timing_checks is None


def test_unsupported_cell_type():
    adder = Instance(name="c1", type="adder", connections=[Connection("a", "x")])
    timing = TimingModel(instances=[TimingRecord("c1", "CARRY", [iopath(1.0)], checks())])
    result, report = merge_with_report(netlist_of(adder), timing)
    assert only_instance(result) == adder
    assert report.matched == ["c1"]
    assert report.unsupported == [("c1", "CARRY")]


def test_unsupported_cell_type_warning():
    adders = [Instance(name=f"c{i}", type="adder") for i in range(3)]
    timing = TimingModel(instances=[TimingRecord(f"c{i}", "CARRY", 1.0) for i in range(3)])
    options = MergeOptions(warn_unsupported=True)
    with pytest.warns(UserWarning, match="CARRY") as record:
        merge(netlist_of(*adders), timing, options=options)
    assert len(record) == 1


def test_unsupported_cell_type_silent_by_default():
    timing = TimingModel(instances=[TimingRecord("c1", "CARRY", 1.0)])
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        merge(netlist_of(Instance(name="c1", type="adder")), timing)


def test_classify():
    options = MergeOptions()
    assert classify(dff(), TimingRecord("ff1", "DFF"), options) == CellKind.SEQUENTIAL
    assert classify(dff(), TimingRecord("ff1", "LUT_K"), options) == CellKind.LOOKUP_TABLE
    assert classify(wire(), TimingRecord("w1", "X"), options) == CellKind.INTERCONNECT
    assert classify(dff(), TimingRecord("ff1", "X"), options) == CellKind.OTHER
    # Cell-type rules take precedence over the instance type
    assert classify(wire(), TimingRecord("w1", "DFF"), options) == CellKind.SEQUENTIAL


def test_custom_options():
    options = MergeOptions(
        sequential_types=["SDFFRX1"],
        lookup_types=["LUT6"],
        interconnect_type="wire_seg",
    )
    assert classify(dff(), TimingRecord("ff1", "SDFFRX1"), options) == CellKind.SEQUENTIAL
    assert classify(dff(), TimingRecord("ff1", "LUT6"), options) == CellKind.LOOKUP_TABLE
    assert classify(dff(), TimingRecord("ff1", "DFF"), options) == CellKind.OTHER
    seg = Instance(name="s", type="wire_seg")
    assert classify(seg, TimingRecord("s", "X"), options) == CellKind.INTERCONNECT


def test_every_cell_kind_has_a_policy():
    assert set(policies) == set(CellKind)


def test_report():
    netlist = netlist_of(dff("a"), dff("b"), wire("w"))
    timing = TimingModel(
        instances=[
            TimingRecord("b", "DFF", 1.0),
            TimingRecord("w", "fpga_interconnect", 2.0),
            TimingRecord("stray", "DFF", 3.0),
        ]
    )
    _, report = merge_with_report(netlist, timing)
    assert report.matched == ["b", "w"]
    assert report.unmatched == ["a"]
    assert report.unused == ["stray"]
    assert report.unsupported == []


def test_across_modules():
    netlist = NetlistModel(
        modules={
            "m1": Module(name="m1", instances=[dff("ff1")]),
            "m2": Module(name="m2", instances=[dff("ff2")]),
        }
    )
    timing = TimingModel(
        instances=[TimingRecord("ff1", "DFF", 1.0), TimingRecord("ff2", "DFF", 2.0)]
    )
    result = merge(netlist, timing)
    assert [i.delays for _, i in result.all_instances()] == [1.0, 2.0]
