from src.biometric_attendance.biometric_attendance.database.bootstrap import _CREATE_OR_USE_DB, _iter_sql_statements


def test_splits_on_semicolons_outside_literals():
    sql = """
    -- roster; demo only
    INSERT INTO employees VALUES ('E01', 'Ravi; Kumar', 'Milker', 650.00, 1);
    INSERT INTO employees VALUES ('E07', 'Anita \\'Devi\\'', 'Shed Supervisor', 800.00, 1);
    SELECT 5 - 3
    """

    stmts = list(_iter_sql_statements(sql))

    assert len(stmts) == 3
    assert "'Ravi; Kumar'" in stmts[0]
    assert "roster" not in stmts[0]
    assert stmts[2] == "SELECT 5 - 3"


def test_database_statements_are_stripped():
    sql = "CREATE DATABASE IF NOT EXISTS dairy;\nUSE dairy;\nCREATE TABLE t (id INT);\n"

    assert list(_iter_sql_statements(_CREATE_OR_USE_DB.sub("", sql))) == ["CREATE TABLE t (id INT)"]
