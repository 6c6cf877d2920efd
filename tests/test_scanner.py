from funnel_dashboard.models import RowKind
from funnel_dashboard.scanner import classify_period, scan, scan_blocks, scan_blocks_adaptive

HEADER = ["Funil", "Período", "Investimento"]


def _row(name: str, period: str, invested: str = "", funnel_revenue: str = "") -> list[str]:
    row = [""] * 20
    row[0] = name
    row[1] = period
    row[2] = invested
    row[18] = funnel_revenue
    return row


def _block(name: str, weeks: int = 4, trend: bool = True) -> list[list[str]]:
    rows = [_row(name if index == 0 else "", f"Semana {index + 1}", "100", "300") for index in range(weeks)]
    if trend:
        rows.append(_row("", "Tendência", "400", "1.200"))
    return rows


def test_classify_period_labels() -> None:
    assert classify_period("Semana 1") is RowKind.WEEK
    assert classify_period("SEMANA 4") is RowKind.WEEK
    assert classify_period("Tendência") is RowKind.TREND
    assert classify_period("tendencia do mês") is RowKind.TREND
    assert classify_period("Total") is RowKind.IGNORED
    assert classify_period(None) is RowKind.IGNORED


def test_end_to_end_single_product() -> None:
    rows = [
        HEADER,
        _row("ProdutoX", "Semana 1", "1000", "2000"),
        _row("", "Semana 2", "500", "500"),
        _row("", "Semana 3"),
        _row("", "Semana 4"),
        ["", "Tendência"],
    ]

    products = scan_blocks(rows)

    assert len(products) == 1
    product = products[0]
    assert product.name == "ProdutoX"
    assert len(product.weeks) == 4
    assert product.tendencia is not None
    assert product.weeks[0].funnel_roas == 2.0
    assert product.weeks[1].funnel_roas == 1.0


def test_stride_scan_returns_one_dataset_per_block() -> None:
    rows = [HEADER]
    for name in ("A", "B", "C"):
        rows.extend(_block(name))

    products = scan_blocks(rows)

    assert [product.name for product in products] == ["A", "B", "C"]
    assert all(len(product.weeks) == 4 for product in products)
    assert all(product.tendencia is not None for product in products)


def test_header_row_is_never_a_product() -> None:
    rows = [_row("Funil", "Semana"), *_block("A")]
    assert [product.name for product in scan_blocks(rows)] == ["A"]


def test_product_name_is_trimmed() -> None:
    rows = [HEADER, *_block("  Couply  ")]
    assert scan_blocks(rows)[0].name == "Couply"


def test_block_without_weeks_is_discarded_even_with_trend() -> None:
    rows = [
        HEADER,
        _row("Vazio", "Total"),
        _row("", "Resumo"),
        _row("", ""),
        _row("", ""),
        _row("", "Tendência", "100", "200"),
        *_block("B"),
    ]

    products = scan_blocks(rows)

    assert [product.name for product in products] == ["B"]


def test_unlabelled_rows_are_not_weeks() -> None:
    rows = [
        HEADER,
        _row("A", "Semana 1", "100", "100"),
        _row("", ""),
        _row("", "Semana 3", "100", "100"),
        _row("", "Observação"),
        _row("", "Tendência"),
    ]
    product = scan_blocks(rows)[0]
    assert len(product.weeks) == 2


def test_last_trend_row_wins() -> None:
    rows = [
        HEADER,
        _row("A", "Semana 1"),
        _row("", "Semana 2"),
        _row("", "Tendência", "100", "100"),
        _row("", "Semana 3"),
        _row("", "Tendência", "100", "500"),
    ]
    product = scan_blocks(rows)[0]
    assert product.tendencia is not None
    assert product.tendencia.funnel_revenue == 500.0


def test_truncated_last_block_keeps_weeks_present() -> None:
    rows = [HEADER, *_block("A"), _row("B", "Semana 1", "10", "20"), _row("", "Semana 2")]
    products = scan_blocks(rows)
    assert [product.name for product in products] == ["A", "B"]
    assert len(products[1].weeks) == 2
    assert products[1].tendencia is None


def test_stride_scan_handles_blank_rows_between_blocks() -> None:
    rows = [HEADER, *_block("A"), [], ["", ""], *_block("B"), [""], *_block("C")]

    products = scan_blocks(rows)

    assert [product.name for product in products] == ["A", "B", "C"]
    assert all(len(product.weeks) == 4 for product in products)


def test_stride_scan_misreads_short_block_followed_by_product() -> None:
    # A has three weeks, so B's first row falls inside A's five-row stride.
    rows = [HEADER, *_block("A", weeks=3), *_block("B"), *_block("C")]

    products = scan_blocks(rows)

    assert [product.name for product in products] == ["A", "C"]
    assert len(products[0].weeks) == 4


def test_adaptive_scan_matches_stride_on_regular_sheet() -> None:
    rows = [HEADER]
    for name in ("A", "B", "C"):
        rows.extend(_block(name))
    assert scan_blocks_adaptive(rows) == scan_blocks(rows)


def test_adaptive_scan_handles_short_block() -> None:
    rows = [HEADER, *_block("A", weeks=3), *_block("B"), *_block("C", weeks=2, trend=False), *_block("D")]

    products = scan_blocks_adaptive(rows)

    assert [product.name for product in products] == ["A", "B", "C", "D"]
    assert [len(product.weeks) for product in products] == [3, 4, 2, 4]
    assert products[2].tendencia is None


def test_adaptive_scan_handles_blank_rows_between_blocks() -> None:
    rows = [HEADER, *_block("A"), [], [], *_block("B")]
    assert [product.name for product in scan_blocks_adaptive(rows)] == ["A", "B"]


def test_adaptive_scan_accepts_repeated_product_name() -> None:
    rows = [
        HEADER,
        _row("A", "Semana 1"),
        _row("A", "Semana 2"),
        _row("a", "Semana 3"),
        _row("A", "Tendência"),
        _row("B", "Semana 1"),
    ]
    products = scan_blocks_adaptive(rows)
    assert [product.name for product in products] == ["A", "B"]
    assert len(products[0].weeks) == 3


def test_adaptive_scan_respects_block_bound() -> None:
    rows = [HEADER, *[_row("A" if index == 0 else "", f"Semana {index + 1}") for index in range(7)]]
    products = scan_blocks_adaptive(rows, max_block_rows=5)
    assert len(products) == 1
    assert len(products[0].weeks) == 5


def test_scanners_never_raise_on_garbage() -> None:
    rows = [HEADER, [], [None, None], ["X"], ["", 12], [], [], [], ["Z", "Semana 1", "#N/A"]]
    assert [product.name for product in scan(rows, mode="stride")] == ["Z"]
    assert [product.name for product in scan(rows, mode="adaptive")] == ["Z"]
    assert scan([]) == []
