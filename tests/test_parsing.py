from context import classes, errors, parsing
import unittest


def kinds(source: str, significant: bool = True) -> list[classes.TokenKind]:
    skipped = (classes.TokenKind.COMMENT, classes.TokenKind.WHITESPACE)
    return [
        t.kind for t in parsing.tokenize(source)
        if not significant or t.kind not in skipped
    ]


class TestTokenize(unittest.TestCase):
    def test_tokenize_raises_TypeError_for_nonstr(self):
        with self.assertRaises(TypeError) as e:
            parsing.tokenize(b'OP_1')

    def test_tokenize_empty_source(self):
        assert parsing.tokenize('') == []

    def test_tokenize_recognizes_every_form(self):
        TK = classes.TokenKind
        assert kinds('OP_1 key.public_key -42 0xab "a" \'b\' < > $( )') == [
            TK.OPCODE, TK.IDENTIFIER, TK.BIGINT, TK.HEX, TK.UTF8, TK.UTF8,
            TK.PUSH_OPEN, TK.PUSH_CLOSE, TK.EVALUATION_OPEN, TK.EVALUATION_CLOSE,
        ]

    def test_tokenize_keeps_comments_and_whitespace(self):
        TK = classes.TokenKind
        assert kinds('OP_1 // one\n/* two */OP_2', False) == [
            TK.OPCODE, TK.WHITESPACE, TK.COMMENT, TK.WHITESPACE,
            TK.COMMENT, TK.OPCODE,
        ]

    def test_tokenize_dotted_identifier_is_one_token(self):
        tokens = parsing.tokenize('owner.signature.all_outputs')
        assert len(tokens) == 1
        assert tokens[0].text == 'owner.signature.all_outputs'
        assert tokens[0].kind is classes.TokenKind.IDENTIFIER

    def test_tokenize_push_brackets_need_no_whitespace(self):
        tokens = parsing.tokenize('<<1>>')
        assert [t.text for t in tokens] == ['<', '<', '1', '>', '>']

    def test_tokenize_utf8_allows_other_quote_and_emoji(self):
        tokens = parsing.tokenize('\'abc"`👍\' "abc\'`👍"')
        assert tokens[0].text == '\'abc"`👍\''
        assert tokens[2].text == '"abc\'`👍"'

    def test_tokenize_block_comment_closes_at_first_terminator(self):
        tokens = parsing.tokenize('/* a /* b */ OP_1')
        assert tokens[0].text == '/* a /* b */'
        assert tokens[2].kind is classes.TokenKind.OPCODE

    def test_tokenize_tracks_ranges_across_lines(self):
        tokens = parsing.tokenize('OP_1\n  /* a\nb */ 0xab')
        assert tokens[0].range == classes.SourceRange(1, 1, 1, 5)
        assert tokens[2].range == classes.SourceRange(2, 3, 3, 5)
        assert tokens[-1].range == classes.SourceRange(3, 6, 3, 10)

    def test_tokenize_raises_LexError_for_unrecognized_character(self):
        with self.assertRaises(errors.LexError) as e:
            parsing.tokenize('OP_1\n  #')
        assert str(e.exception) == 'Unrecognized character "#".'
        assert e.exception.range == classes.SourceRange(2, 3, 2, 4)
        assert e.exception.error_type is errors.ErrorType.LEX

    def test_tokenize_raises_LexError_for_unterminated_literals(self):
        with self.assertRaises(errors.LexError) as e:
            parsing.tokenize('OP_1 "abc')
        assert 'Unterminated UTF8 literal' in str(e.exception)
        assert e.exception.range == classes.SourceRange(1, 6, 1, 7)

        with self.assertRaises(errors.LexError) as e:
            parsing.tokenize('/* never closed')
        assert 'Unterminated block comment' in str(e.exception)


class TestParse(unittest.TestCase):
    def parse(self, source: str) -> classes.Program:
        return parsing.parse(parsing.tokenize(source))

    def test_parse_empty_program(self):
        program = self.parse('  // nothing here\n')
        assert program.statements == []
        assert program.range == classes.SourceRange(1, 1, 1, 1)

    def test_parse_literals(self):
        program = self.parse('42 -42 0xDEADbeef "text"')
        assert [(s.kind, s.value) for s in program.statements] == [
            (classes.LiteralKind.BIGINT, 42),
            (classes.LiteralKind.BIGINT, -42),
            (classes.LiteralKind.HEX, 'DEADbeef'),
            (classes.LiteralKind.UTF8, 'text'),
        ]

    def test_parse_opcodes_and_identifiers(self):
        program = self.parse('OP_DUP owner.public_key')
        assert type(program.statements[0]) is classes.OpcodeRef
        assert program.statements[0].name == 'OP_DUP'
        assert type(program.statements[1]) is classes.Identifier
        assert program.statements[1].name == 'owner.public_key'

    def test_parse_nested_push_and_evaluation(self):
        program = self.parse('<$(<1> OP_1) OP_2>')
        assert len(program.statements) == 1
        push = program.statements[0]
        assert type(push) is classes.Push
        assert push.range == classes.SourceRange(1, 1, 1, 19)
        evaluation, opcode = push.children
        assert type(evaluation) is classes.Evaluation
        assert evaluation.range == classes.SourceRange(1, 2, 1, 13)
        assert type(evaluation.children[0]) is classes.Push
        assert opcode.name == 'OP_2'

    def test_parse_deeply_nested_pushes(self):
        program = self.parse('<' * 500 + '1' + '>' * 500)
        node = program.statements[0]
        depth = 0
        while type(node) is classes.Push:
            node = node.children[0]
            depth += 1
        assert depth == 500
        assert node.value == 1

    def test_parse_program_range_spans_significant_tokens(self):
        program = self.parse('// lead\n  OP_1\nOP_2 // trail')
        assert program.range == classes.SourceRange(2, 3, 3, 5)

    def test_parse_raises_ParseError_for_unmatched_push_open(self):
        with self.assertRaises(errors.ParseError) as e:
            self.parse('OP_1 <0x01')
        assert str(e.exception) == 'Unterminated push: missing ">" for "<".'
        assert e.exception.range == classes.SourceRange(1, 6, 1, 7)
        assert e.exception.error_type is errors.ErrorType.PARSE

    def test_parse_raises_ParseError_for_unmatched_closers(self):
        with self.assertRaises(errors.ParseError) as e:
            self.parse('OP_1 >')
        assert str(e.exception) == 'Unexpected ">" without a matching "<".'

        with self.assertRaises(errors.ParseError) as e:
            self.parse(')')
        assert str(e.exception) == 'Unexpected ")" without a matching "$(".'

        with self.assertRaises(errors.ParseError) as e:
            self.parse('$(OP_1')
        assert str(e.exception) == 'Unterminated evaluation: missing ")" for "$(".'

    def test_parse_raises_ParseError_for_crossed_brackets(self):
        with self.assertRaises(errors.ParseError) as e:
            self.parse('<$(OP_1>)')
        assert str(e.exception) == 'Expected ")" to close "$(", found ">".'

    def test_parse_raises_ParseError_for_malformed_literals(self):
        with self.assertRaises(errors.ParseError) as e:
            self.parse('12abc')
        assert str(e.exception) == 'Malformed BigInt literal "12abc".'

        with self.assertRaises(errors.ParseError) as e:
            self.parse('0xfg')
        assert str(e.exception) == 'Malformed hex literal "0xfg".'

    def test_parse_keeps_odd_length_hex_for_encoding(self):
        program = self.parse('0xabc')
        assert program.statements[0].value == 'abc'

    def test_parse_requires_lowercase_prefix_and_hex_digits(self):
        with self.assertRaises(errors.ParseError) as e:
            self.parse('0X12')
        assert str(e.exception) == 'Malformed BigInt literal "0X12".'

        with self.assertRaises(errors.ParseError) as e:
            self.parse('0x')
        assert str(e.exception) == 'Malformed hex literal "0x".'

        with self.assertRaises(errors.ParseError) as e:
            self.parse('<0x>')
        assert str(e.exception) == 'Malformed hex literal "0x".'

        program = self.parse('0xABcd')
        assert program.statements[0].value == 'ABcd'


if __name__ == '__main__':
    unittest.main()
