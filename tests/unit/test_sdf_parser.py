
from textwrap import dedent

import pytest

from timingmap import (
    parse_str,
    parse_sdf,
    ParseOptions,
    ErrorMode,
    SdfDialectParser,
    TimingModel,
    TimingRecord,
    SdfHeader,
    PathDelay,
    TimingCheck,
    SdfSyntaxError,
)


def cell(body: str, *, cell_type: str = "DFF", instance: str = "u1") -> str:
    """Wrap `body` in a single-cell delay file"""
    return f'(DELAYFILE (CELL (CELLTYPE "{cell_type}") (INSTANCE {instance}) {body}))'


def test_header():
    src = dedent(
        """
        (DELAYFILE
            (SDFVERSION "2.1")
            (DESIGN "top")
            (VENDOR "verilog-to-routing")
            (PROGRAM "vpr")
            (VERSION "8.0.0")
            (DIVIDER /)
            (TIMESCALE 1 ps)
        )
        """
    )
    timing = parse_sdf(src)
    assert timing == TimingModel(
        instances=[],
        header=SdfHeader(
            version="2.1",
            design="top",
            vendor="verilog-to-routing",
            program="vpr",
            program_version="8.0.0",
            divider="/",
            timescale="1ps",
        ),
    )


def test_iopath():
    src = dedent(
        """
        (DELAYFILE
            (CELL
                (CELLTYPE "fpga_interconnect")
                (INSTANCE routing_segment_a_to_b)
                (DELAY
                    (ABSOLUTE
                        (IOPATH datain dataout (312.0:312.0:312.0) (312.0:312.0:312.0))
                    )
                )
            )
        )
        """
    )
    (record,) = parse_sdf(src).instances
    assert record == TimingRecord(
        instance_name="routing_segment_a_to_b",
        cell_type="fpga_interconnect",
        delays=[
            PathDelay(
                kind="IOPATH",
                input="datain",
                output="dataout",
                rise=312.0,
                fall=312.0,
                delay=312.0,
            )
        ],
        timing_checks=[],
    )


def test_edge_qualified_iopath():
    src = cell("(DELAY (ABSOLUTE (IOPATH (posedge clock) Q (303:303:303) (280:280:280))))")
    (path,) = parse_sdf(src).instances[0].delays
    assert path.edge == "posedge"
    assert path.input == "clock"
    assert path.output == "Q"
    assert path.rise == 303.0
    assert path.fall == 280.0
    assert path.delay == 303.0


def test_delay_value_forms():
    src = cell(
        dedent(
            """
            (DELAY (ABSOLUTE
                (IOPATH a y (1:2:3) (4))
                (IOPATH b y (::7))
                (IOPATH c y (5::))
                (IOPATH d y ())
            ))
            """
        )
    )
    paths = parse_sdf(src).instances[0].delays
    assert [(p.rise, p.fall, p.delay) for p in paths] == [
        (2.0, 4.0, 4.0),
        (7.0, 7.0, 7.0),
        (5.0, 5.0, 5.0),
        (None, None, None),
    ]


def test_negative_and_exponent_values():
    src = cell("(DELAY (ABSOLUTE (IOPATH a y (-1.5:-1.5:-1.5) (2e2))))")
    (path,) = parse_sdf(src).instances[0].delays
    assert path.rise == -1.5
    assert path.fall == 200.0


def test_device_scalar():
    (record,) = parse_sdf(cell("(DELAY (ABSOLUTE (DEVICE (3))))")).instances
    assert record.delays == 3.0


def test_device_with_port_is_a_list():
    (record,) = parse_sdf(cell("(DELAY (ABSOLUTE (DEVICE y (3))))")).instances
    assert record.delays == [PathDelay(kind="DEVICE", output="y", rise=3.0, fall=3.0, delay=3.0)]


def test_no_delays():
    (record,) = parse_sdf(cell("(TIMINGCHECK (WIDTH (posedge clk) (100)))")).instances
    assert record.delays == []
    assert record.timing_checks == [TimingCheck(kind="WIDTH", ports=["posedge clk"], values=[100.0])]


def test_increment_and_cond():
    src = cell("(DELAY (INCREMENT (COND en==1 (IOPATH a y (1) (2)))))")
    (path,) = parse_sdf(src).instances[0].delays
    assert path == PathDelay(
        kind="IOPATH",
        input="a",
        output="y",
        cond="en==1",
        rise=1.0,
        fall=2.0,
        delay=2.0,
        increment=True,
    )


def test_interconnect_and_port():
    src = cell(
        "(DELAY (ABSOLUTE (INTERCONNECT u0/y u1/a (5)) (PORT b (6))))",
        cell_type="top",
        instance="",
    )
    (record,) = parse_sdf(src).instances
    assert record.instance_name == ""
    assert [(p.kind, p.input, p.output, p.delay) for p in record.delays] == [
        ("INTERCONNECT", "u0/y", "u1/a", 5.0),
        ("PORT", "b", None, 6.0),
    ]


def test_timing_checks():
    src = cell(
        dedent(
            """
            (TIMINGCHECK
                (SETUP D (posedge clock) (66.0:66.0:66.0))
                (HOLD D (posedge clock) (-20.0:-20.0:-20.0))
                (SETUPHOLD D (negedge clk) (1) (2))
            )
            """
        )
    )
    (record,) = parse_sdf(src).instances
    assert record.timing_checks == [
        TimingCheck(kind="SETUP", ports=["D", "posedge clock"], values=[66.0]),
        TimingCheck(kind="HOLD", ports=["D", "posedge clock"], values=[-20.0]),
        TimingCheck(kind="SETUPHOLD", ports=["D", "negedge clk"], values=[1.0, 2.0]),
    ]


def test_skipped_blocks():
    src = cell(
        dedent(
            """
            (DELAY
                (PATHPULSE a y (1) (2))
                (ABSOLUTE (IOPATH a y (3) (3)))
            )
            (TIMINGENV (SETUPHOLD a b (1) (2)))
            """
        )
    )
    (record,) = parse_sdf(src).instances
    assert [p.delay for p in record.delays] == [3.0]
    assert record.timing_checks == []


def test_instance_path_kept_verbatim():
    (record,) = parse_sdf(cell("", instance="top/sub\\$1/u[3]")).instances
    assert record.instance_name == "top/sub\\$1/u[3]"


def test_duplicate_instances_kept():
    src = dedent(
        """
        (DELAYFILE
            (CELL (CELLTYPE "DFF") (INSTANCE ff) (DELAY (ABSOLUTE (DEVICE (1)))))
            (CELL (CELLTYPE "DFF") (INSTANCE ff) (DELAY (ABSOLUTE (DEVICE (2)))))
        )
        """
    )
    timing = parse_sdf(src)
    assert [(r.instance_name, r.delays) for r in timing.instances] == [("ff", 1.0), ("ff", 2.0)]


def test_comments():
    src = dedent(
        """
        // Generated delay file
        (DELAYFILE
            /* no header */
            (CELL (CELLTYPE "LUT_K") (INSTANCE lut) // the only cell
                (DELAY (ABSOLUTE (IOPATH in[0] out (10) (10))))
            )
        )
        """
    )
    (record,) = parse_sdf(src).instances
    assert record.delays[0].input == "in[0]"


def test_sniffs_sdf():
    timing = parse_str("(DELAYFILE)")
    assert timing == TimingModel()


def test_non_numeric_delay():
    src = '(DELAYFILE\n(CELL (CELLTYPE "DFF") (INSTANCE u1)\n(DELAY (ABSOLUTE (IOPATH a y (fast))))))'
    with pytest.raises(SdfSyntaxError) as excinfo:
        parse_sdf(src)
    assert "numeric" in str(excinfo.value)
    assert excinfo.value.lineno == 3
    assert isinstance(excinfo.value, SyntaxError)


def test_missing_celltype():
    with pytest.raises(SdfSyntaxError):
        parse_sdf("(DELAYFILE (CELL (INSTANCE u1)))")


def test_unknown_top_level_entry():
    with pytest.raises(SdfSyntaxError):
        parse_sdf("(DELAYFILE (BOGUS 1))")


def test_unterminated_cell():
    with pytest.raises(SdfSyntaxError):
        parse_sdf('(DELAYFILE (CELL (CELLTYPE "DFF") (INSTANCE u1)')


def test_store_mode_skips_cell():
    src = dedent(
        """
        (DELAYFILE
            (CELL (CELLTYPE "DFF") (INSTANCE bad) (DELAY (ABSOLUTE (IOPATH a y (fast)))))
            (CELL (CELLTYPE "DFF") (INSTANCE good) (DELAY (ABSOLUTE (DEVICE (4)))))
        )
        """
    )
    p = SdfDialectParser.from_str(src, options=ParseOptions(errormode=ErrorMode.STORE))
    with pytest.warns(UserWarning):
        timing = p.parse()
    assert [r.instance_name for r in timing.instances] == ["good"]
    assert timing.instances[0].delays == 4.0
    assert len(p.errors) == 1


def test_store_mode_unterminated_still_raises():
    options = ParseOptions(errormode=ErrorMode.STORE)
    with pytest.raises(SdfSyntaxError):
        parse_sdf('(DELAYFILE (CELL (CELLTYPE "DFF") (INSTANCE u1)', options=options)


def test_synthesis_delay_file():
    src = dedent(
        """
        (DELAYFILE
        (SDFVERSION "OVI 2.1")
        (DESIGN "test")
        (DATE "Wed May 31 14:46:06 2017")
        (VOLTAGE 1.20:1.20:1.20)
        (PROCESS "TYPICAL")
        (TEMPERATURE 25.00:25.00:25.00)
        (TIMESCALE 1ns)
        (CELL
          (CELLTYPE "b14")
          (INSTANCE)
          (DELAY
            (ABSOLUTE
            (INTERCONNECT U621/ZN U19246/IN1 (0.000:0.000:0.000))
            )
          )
        )
        (CELL
          (CELLTYPE "SDFFARX1")
          (INSTANCE reg3_reg_1_0)
          (DELAY
            (ABSOLUTE
            (IOPATH (negedge RSTB) Q () (0.909:0.948:0.948))
            )
          )
          (TIMINGCHECK
            (SETUP (posedge D) (posedge CLK) (0.544:0.553:0.553))
          )
        )
        )
        """
    )
    timing = parse_sdf(src)
    assert timing.header.version == "OVI 2.1"
    assert timing.header.date == "Wed May 31 14:46:06 2017"
    assert timing.header.timescale == "1ns"

    top, reg = timing.instances
    assert top.instance_name == ""
    assert top.delays[0].input == "U621/ZN"
    assert top.delays[0].delay == 0.0

    (path,) = reg.delays
    assert path.rise is None
    assert path.fall == 0.948
    assert path.delay == 0.948
    assert reg.timing_checks == [
        TimingCheck(kind="SETUP", ports=["posedge D", "posedge CLK"], values=[0.553])
    ]


def test_non_numeric_check_value():
    src = cell("(TIMINGCHECK (SETUP D (posedge clk) (abc)))")
    with pytest.raises(SdfSyntaxError) as excinfo:
        parse_sdf(src)
    assert "numeric" in str(excinfo.value)


def test_cond_check_operand():
    src = cell("(TIMINGCHECK (SETUP (COND en D) (posedge clk) (1)))")
    (record,) = parse_sdf(src).instances
    assert record.timing_checks == [
        TimingCheck(kind="SETUP", ports=["COND en D", "posedge clk"], values=[1.0])
    ]


@pytest.mark.parametrize(
    "src",
    [
        '// generated\n(DELAYFILE (DESIGN "top"))',
        '/* generated */ (DELAYFILE (DESIGN "top"))',
    ],
)
def test_sniffs_sdf_after_comment(src: str):
    timing = parse_str(src)
    assert isinstance(timing, TimingModel)
    assert timing.header.design == "top"


def test_string_dialect():
    timing = parse_str("(DELAYFILE)", options=ParseOptions(dialect="sdf"))
    assert timing == TimingModel()
