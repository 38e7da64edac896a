"""
Tests for the jump graph DOT generator.

These tests verify that surveys are correctly converted to Graphviz DOT format.
Visual output is easy to get wrong and hard to debug, so the checks are
fairly literal.

Tests cover:
    - Page and question nodes, START and END markers
    - Jump edges (solid) and sequential edges (dashed)
    - Condition and priority labels in detailed mode
    - Page clusters in management mode
    - Escaping of quotes in labels
"""

from surveynav.backends.dot_generator import DotMode, generate_dot, save_dot_file
from surveynav.model import Expression, Page, Question, Survey


class TestDotBasicStructure:
    """Test basic DOT graph structure."""

    def test_empty_survey_generates_valid_dot(self):
        dot = generate_dot(Survey(id="empty"), mode=DotMode.SIMPLE)
        assert dot.startswith("digraph survey {")
        assert dot.endswith("}")
        assert "START -> END;" in dot

    def test_pages_and_questions_become_nodes(self, car_survey):
        dot = generate_dot(car_survey)
        assert '"page:P1" [shape=folder' in dot
        assert '"question:Q1" [label="Q1"];' in dot

    def test_start_points_at_first_page(self, car_survey):
        assert 'START -> "page:P1";' in generate_dot(car_survey)

    def test_last_page_reaches_end(self, car_survey):
        assert '"question:Q7" -> END [style=dashed];' in generate_dot(car_survey)


class TestDotEdges:
    """Test jump and sequential edges."""

    def test_sequential_edges_are_dashed(self, car_survey):
        dot = generate_dot(car_survey)
        assert '"page:P1" -> "question:Q1" [style=dashed];' in dot
        assert '"question:Q1" -> "question:Q2" [style=dashed];' in dot

    def test_jump_edges_are_solid_in_simple_mode(self, car_survey):
        dot = generate_dot(car_survey, mode=DotMode.SIMPLE)
        assert '"question:Q3" -> "question:Q5";' in dot
        assert '"question:Q4" -> "page:P3";' in dot

    def test_page_jump_leaves_from_last_question(self, car_survey):
        assert '"question:Q5" -> "page:P4";' in generate_dot(car_survey)

    def test_termination_edge(self, car_survey):
        assert '"question:Q1" -> END [color=red];' in generate_dot(car_survey)


class TestDotModes:
    """Test mode-specific output."""

    def test_detailed_labels_condition_and_priority(self, car_survey):
        dot = generate_dot(car_survey, mode=DotMode.DETAILED)
        assert "[0] equals(answer('Q1'), 'BMW')" in dot
        assert '[1] always' in dot

    def test_detailed_jump_edges_follow_priority_not_storage(self, car_survey):
        car_survey.question_jumps.reverse()
        dot = generate_dot(car_survey, mode=DotMode.DETAILED)
        q3_jumps = [
            line for line in dot.splitlines()
            if line.strip().startswith('"question:Q3" ->') and "style=dashed" not in line
        ]
        assert "[0]" in q3_jumps[0] and '"question:Q5"' in q3_jumps[0]
        assert "[1]" in q3_jumps[1] and '"question:Q4"' in q3_jumps[1]

    def test_detailed_shows_visibility(self, car_survey):
        dot = generate_dot(car_survey, mode=DotMode.DETAILED)
        assert "Visible: anySelected('Q2', ['NAV'])" in dot

    def test_simple_mode_hides_conditions(self, car_survey):
        assert "equals(answer" not in generate_dot(car_survey, mode=DotMode.SIMPLE)

    def test_management_mode_clusters_pages(self, car_survey):
        dot = generate_dot(car_survey, mode=DotMode.MANAGEMENT)
        assert 'subgraph "cluster_P2" {' in dot
        cluster = dot.split('subgraph "cluster_P2" {')[1].split("}")[0]
        assert '"question:Q3";' in cluster
        assert '"question:Q1";' not in cluster


class TestDotEscaping:
    """Test label escaping."""

    def test_quotes_in_conditions_escaped(self):
        survey = Survey(id="s")
        survey.pages = [Page(id="P1", survey_id="s", index=0, visible_if_expression_id="e")]
        survey.expressions = [Expression("e", 'equals(answer(\'Q1\'), \'say "hi"\')')]
        survey.questions = [Question(id="Q1", survey_id="s", page_id="P1", index=0, variable_name="Q1")]

        dot = generate_dot(survey, mode=DotMode.DETAILED)

        assert '\\"hi\\"' in dot


def test_save_dot_file(car_survey, tmp_path):
    target = tmp_path / "survey.dot"
    save_dot_file(car_survey, str(target), mode=DotMode.MANAGEMENT)
    assert target.read_text() == generate_dot(car_survey, mode=DotMode.MANAGEMENT)
