import json
import logging

import pytest

from phyloroot.__main__ import main
from phyloroot.config import AnalysisConfig
from phyloroot.exceptions import OutgroupError
from phyloroot.io import read_newick
from phyloroot.pipeline import (
    PARSIMONY_TREES_FILE,
    SUPPORT_JSON_FILE,
    SUPPORT_TREE_FILE,
    run_analysis,
)


@pytest.fixture
def restore_root_logger():
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield
    for handler in list(root_logger.handlers):
        if handler not in handlers:
            root_logger.removeHandler(handler)
            handler.close()
    root_logger.setLevel(level)


def assert_rooted_on(tree, outgroup):
    names = [set(child.get_current_order()) for child in tree.children]
    assert set(outgroup) in names
    lengths = [child.length for child in tree.children]
    assert lengths[0] == pytest.approx(lengths[1])
    assert tree.name == ""


def test_run_analysis_writes_rooted_trees(csv_matrix, tmp_path):
    config = AnalysisConfig(
        outgroup=["O"], seed=3, n_starts=2, bootstrap_replicates=4, max_workers=2
    )

    result = run_analysis(csv_matrix, tmp_path / "out", config)

    assert result.n_taxa == 6
    assert result.n_characters == 10
    assert result.parsimony_score == 10
    assert result.tree_file_path == tmp_path / "out" / PARSIMONY_TREES_FILE

    trees = read_newick(result.tree_file_path, force_list=True)
    assert len(trees) == result.n_trees
    for tree in trees:
        assert_rooted_on(tree, ["O"])

    support_tree = read_newick(result.support_tree_path)
    assert result.support_tree_path.name == SUPPORT_TREE_FILE
    assert_rooted_on(support_tree, ["O"])
    internal = [
        node for node in support_tree.traverse()
        if node.is_internal() and node.parent is not None
    ]
    # The ingroup edge duplicates the outgroup edge and carries no support
    ingroup = [child for child in support_tree.children if child.is_internal()]
    assert [child.name for child in ingroup] == [""]
    assert all(node.name.isdigit() for node in internal if node not in ingroup)

    data = json.loads(result.support_json_path.read_text())
    assert result.support_json_path.name == SUPPORT_JSON_FILE
    assert data["name"] == ""
    assert len(data["children"]) == 2

    assert result.figure_path.exists()
    assert result.figure_path.suffix == ".png"
    assert result.figure_path.stat().st_size > 0


def test_run_analysis_without_bootstrap_or_plot(csv_matrix, tmp_path):
    config = AnalysisConfig(
        outgroup=["O", "E"], seed=1, n_starts=1, bootstrap_replicates=0, plot_format=None
    )

    result = run_analysis(csv_matrix, tmp_path, config)

    assert result.support_tree_path is None
    assert result.figure_path is None
    for tree in read_newick(result.tree_file_path, force_list=True):
        assert_rooted_on(tree, ["O", "E"])
    assert result.to_dict()["support_tree_path"] is None


def test_run_analysis_is_reproducible(csv_matrix, tmp_path):
    config = AnalysisConfig(outgroup=["O"], seed=9, n_starts=3, bootstrap_replicates=3)
    first = run_analysis(csv_matrix, tmp_path / "a", config)
    second = run_analysis(csv_matrix, tmp_path / "b", config)
    assert first.tree_file_path.read_text() == second.tree_file_path.read_text()
    assert first.support_tree_path.read_text() == second.support_tree_path.read_text()


def test_run_analysis_outgroup_name_with_space(matrix_rows, tmp_path):
    rows = {
        ("Out group" if taxon == "O" else taxon): states
        for taxon, states in matrix_rows.items()
    }
    path = tmp_path / "spaced.csv"
    path.write_text(
        "taxon," + ",".join(f"c{i}" for i in range(10)) + "\n"
        + "".join(f"{taxon},{','.join(states)}\n" for taxon, states in rows.items())
    )
    config = AnalysisConfig(
        outgroup=["Out group"], n_starts=1, bootstrap_replicates=0, plot_format=None
    )

    result = run_analysis(path, tmp_path / "out", config)

    for tree in read_newick(result.tree_file_path, force_list=True):
        assert_rooted_on(tree, ["Out_group"])


def test_run_analysis_unknown_outgroup(csv_matrix, tmp_path):
    config = AnalysisConfig(outgroup=["Z"], n_starts=1, bootstrap_replicates=0)
    with pytest.raises(OutgroupError, match="Z"):
        run_analysis(csv_matrix, tmp_path, config)


def test_result_to_dict(csv_matrix, tmp_path):
    config = AnalysisConfig(
        outgroup=["O"], n_starts=1, bootstrap_replicates=0, plot_format=None
    )
    data = run_analysis(csv_matrix, tmp_path, config).to_dict()
    assert data["tree_file_path"] == str(tmp_path / PARSIMONY_TREES_FILE)
    assert data["parsimony_score"] == 10
    assert len(data["start_scores"]) == 1
    json.dumps(data)


def test_cli(csv_matrix, tmp_path, monkeypatch, capsys, restore_root_logger):
    monkeypatch.chdir(tmp_path)
    out = tmp_path / "cli_out"

    code = main(
        [
            "-i", str(csv_matrix),
            "-o", str(out),
            "-g", "O",
            "--starts", "2",
            "-b", "2",
            "--plot", "none",
            "--seed", "4",
        ]
    )

    assert code == 0
    data = json.loads(capsys.readouterr().out)
    assert data["tree_file_path"] == str(out / PARSIMONY_TREES_FILE)
    assert data["figure_path"] is None
    assert (tmp_path / "logs" / "phyloroot.log").exists()


def test_cli_reports_errors(csv_matrix, tmp_path, monkeypatch, restore_root_logger):
    monkeypatch.chdir(tmp_path)
    code = main(["-i", str(csv_matrix), "-o", str(tmp_path), "-g", "Nope", "-b", "0"])
    assert code == 1
    assert "Nope" in (tmp_path / "logs" / "phyloroot.log").read_text()


def test_cli_rejects_unknown_log_level(
    csv_matrix, tmp_path, monkeypatch, restore_root_logger
):
    monkeypatch.chdir(tmp_path)
    code = main(
        ["-i", str(csv_matrix), "-o", str(tmp_path), "-g", "O", "--log-level", "loud"]
    )
    assert code == 1
    assert not (tmp_path / PARSIMONY_TREES_FILE).exists()
