from context import classes, compiler, encoding, errors, functions, interfaces
import asyncio
import unittest


def compile_source(source: str, **overrides) -> classes.CompilationSuccess|classes.CompilationFailure:
    """Compile a single script named "test" with the common compiler."""
    common = compiler.create_compiler_common(scripts={'test': source}, **overrides)
    return common.generate_bytecode('test')


class TestLanguage(unittest.TestCase):
    def expect_bytecode(self, source: str, expected: str) -> None:
        result = compile_source(source)
        assert result.success, result
        assert result.bytecode.hex() == expected, result.bytecode.hex()

    def test_empty_script(self):
        self.expect_bytecode('', '')

    def test_bigint_literals_compile_to_script_numbers(self):
        self.expect_bytecode('42 -42 2147483647 -2147483647', '2aaaffffff7fffffffff')

    def test_utf8_literal_with_single_quotes(self):
        self.expect_bytecode('\'abc"`👍\'', '6162632260f09f918d')

    def test_utf8_literal_with_double_quotes(self):
        self.expect_bytecode('"abc\'`👍"', '6162632760f09f918d')

    def test_hex_literal(self):
        self.expect_bytecode('0xdeadbeef', 'deadbeef')

    def test_opcodes(self):
        self.expect_bytecode('OP_0 OP_1 OP_ADD', '005193')

    def test_comments(self):
        self.expect_bytecode(
            '// a comment\n'
            '  0xab\n'
            '  // another comment\n'
            '  0xcd\n'
            '  /**\n'
            '   * A third, multi-line\n'
            '   * comment\n'
            '   */\n'
            '  0xef\n'
            '  ',
            'abcdef'
        )

    def test_empty_push(self):
        self.expect_bytecode('<>', '00')

    def test_bigint_pushes_are_minimized(self):
        self.expect_bytecode(
            '< -1 > ' + ' '.join(f'<{i}>' for i in range(18)),
            '4f005152535455565758595a5b5c5d5e5f600111'
        )

    def test_hex_pushes_are_minimized(self):
        self.expect_bytecode(
            '<0x81> <> ' + ' '.join(f'<0x{i:02x}>' for i in range(1, 18)),
            '4f005152535455565758595a5b5c5d5e5f600111'
        )

    def test_zero_byte_push_is_not_minimized(self):
        self.expect_bytecode('<0x00>', '0100')

    def test_utf8_push(self):
        self.expect_bytecode('<"abc">', '03616263')

    def test_opcode_pushes(self):
        self.expect_bytecode('<OP_0> <OP_1> <OP_2>', '010001510152')

    def test_nested_pushes_minimize_the_center(self):
        self.expect_bytecode('<<<<1>>>>', '03020151')

    def test_complex_script(self):
        self.expect_bytecode(
            '\n'
            '// there are plenty of ways to push 0/call OP_0\n'
            '<0> OP_0 0x00 <\'\'> <$(OP_0)> <$(< -1 > < 1 > OP_ADD)>\n'
            '/**\n'
            ' * A multi-line comment 🚀\n'
            ' * Followed by some UTF8Literals\n'
            ' */\n'
            '\'abc\' "\'🧙\'"\n'
            '// a comment at the end\n',
            '00000000000061626327f09fa79927'
        )

    def test_large_push_uses_pushdata(self):
        self.expect_bytecode('<0x' + 'ab' * 76 + '>', '4c4c' + 'ab' * 76)

    def test_evaluation_result_is_spliced_unpushed(self):
        self.expect_bytecode('$(<0xabcd> <0xef> OP_CAT)', 'abcdef')

    def test_comments_never_change_bytecode(self):
        plain = compile_source('OP_1 <0xabcd> $(OP_2 OP_3 OP_ADD)')
        commented = compile_source(
            '/* start */ OP_1 // one\n<0xabcd /* inside */> $(OP_2 // two\n OP_3 OP_ADD)'
        )
        assert plain.bytecode == commented.bytecode == bytes.fromhex('5102abcd05')

    def test_deeply_nested_pushes_compile(self):
        expected = b'\x01'
        for _ in range(2000):
            expected = encoding.encode_data_push(expected)
        result = compile_source('<' * 2000 + '1' + '>' * 2000)
        assert result.success, result
        assert result.bytecode == expected

    def test_deeply_nested_evaluations_compile(self):
        self.expect_bytecode('$(<' * 1200 + '1' + '>)' * 1200, '01')


class TestCompileErrors(unittest.TestCase):
    def test_unknown_identifier_is_ResolutionError(self):
        result = compile_source('OP_1 bogus')
        assert not result.success
        assert result.error_type is errors.ErrorType.RESOLVE
        assert len(result.errors) == 1
        error = result.errors[0]
        assert error.message == 'Unknown identifier "bogus".'
        assert error.range == classes.SourceRange(1, 6, 1, 11)
        assert error.script_id == 'test'

    def test_odd_length_hex_is_EncodingError(self):
        result = compile_source('OP_1 0xabc')
        assert result.error_type is errors.ErrorType.ENCODE
        assert result.errors[0].range == classes.SourceRange(1, 6, 1, 11)

    def test_unmatched_push_is_ParseError(self):
        result = compile_source('OP_1 <0x01')
        assert result.error_type is errors.ErrorType.PARSE
        assert result.errors[0].script_id == 'test'

    def test_unrecognized_character_is_LexError(self):
        result = compile_source('OP_1 @')
        assert result.error_type is errors.ErrorType.LEX
        assert result.errors[0].message == 'Unrecognized character "@".'

    def test_unknown_script_id(self):
        common = compiler.create_compiler_common(scripts={})
        result = common.generate_bytecode('missing')
        assert result.error_type is errors.ErrorType.RESOLVE
        assert result.errors[0].message == 'Unknown script "missing".'
        assert result.errors[0].script_id == 'missing'

    def test_failed_evaluation_is_EvaluationExecutionError(self):
        result = compile_source('OP_1 $(OP_1 OP_RETURN)')
        assert result.error_type is errors.ErrorType.EVALUATE
        assert result.errors[0].message == 'Failed to reduce evaluation: OP_RETURN called'
        assert result.errors[0].range == classes.SourceRange(1, 6, 1, 23)

    def test_evaluation_leaving_empty_stack_is_EvaluationExecutionError(self):
        result = compile_source('$(OP_1 OP_DROP)')
        assert result.error_type is errors.ErrorType.EVALUATE
        assert result.errors[0].message == (
            'Evaluation completed without leaving an item on the stack.'
        )

    def test_evaluation_without_vm_is_ResolutionError(self):
        result = compile_source('$(OP_1)', vm=None)
        assert result.error_type is errors.ErrorType.RESOLVE
        assert 'require a virtual machine' in result.errors[0].message

    def test_pushes_without_vm_still_compile(self):
        result = compile_source('<1> <2>', vm=None)
        assert result.bytecode.hex() == '5152'

    def test_invalid_vm_result_is_ResolutionError(self):
        class NonBytesMachine:
            def evaluate(self, bytecode: bytes) -> classes.EvaluationResult:
                return classes.EvaluationResult(True, ['not bytes'])

        class SilentMachine:
            def evaluate(self, bytecode: bytes) -> classes.EvaluationResult:
                return None

        for vm in (NonBytesMachine(), SilentMachine()):
            result = compile_source('<$(OP_1)>', vm=vm)
            assert not result.success
            assert result.error_type is errors.ErrorType.RESOLVE
            assert 'invalid result' in result.errors[0].message
            assert result.errors[0].range == classes.SourceRange(1, 2, 1, 9)
            assert result.errors[0].script_id == 'test'

    def test_ambiguous_identifier_is_ResolutionError(self):
        common = compiler.create_compiler_common(
            scripts={'test': 'shared', 'shared': 'OP_1'},
            variables={'shared': {'type': 'WalletData'}},
        )
        result = common.generate_bytecode('test')
        assert result.error_type is errors.ErrorType.RESOLVE
        assert result.errors[0].message == (
            'Identifier "shared" is ambiguous; it names more than one of: '
            'variable, script.'
        )

    def test_generate_bytecode_raises_TypeError_for_bad_arguments(self):
        common = compiler.create_compiler_common(scripts={'test': 'OP_1'})
        with self.assertRaises(TypeError) as e:
            common.generate_bytecode(b'test')
        with self.assertRaises(TypeError) as e:
            common.generate_bytecode('test', {'keys': {}})

    def test_create_compiler_raises_TypeError_for_nonenvironment(self):
        with self.assertRaises(TypeError) as e:
            compiler.create_compiler({'scripts': {}})

    def test_create_compiler_raises_TypeError_for_invalid_capabilities(self):
        with self.assertRaises(TypeError) as e:
            compiler.create_compiler_common(vm=object())
        assert str(e.exception) == 'vm must implement CanEvaluate'

        with self.assertRaises(TypeError) as e:
            compiler.create_compiler_common(ed25519=object())
        assert str(e.exception) == 'ed25519 must implement CanSign'


class TestCompiler(unittest.TestCase):
    def setUp(self) -> None:
        self.compiler = compiler.create_compiler_common(
            scripts={'lock': 'OP_1 unlock_part OP_EQUAL', 'unlock_part': '<0xabcd>'},
        )
        return super().setUp()

    def test_create_compiler_common_uses_common_opcodes(self):
        assert self.compiler.environment.opcodes == functions.opcode_map()
        assert type(self.compiler.environment.vm) is functions.StackMachine
        assert isinstance(self.compiler.environment.vm, interfaces.CanEvaluate)
        assert isinstance(self.compiler.environment.ed25519, interfaces.CanSign)

    def test_compilation_is_repeatable(self):
        first = self.compiler.generate_bytecode('lock')
        second = self.compiler.generate_bytecode('lock')
        assert first == second
        assert first.bytecode.hex() == '5102abcd87'

    def test_environment_is_not_mutated(self):
        scripts = dict(self.compiler.environment.scripts)
        self.compiler.generate_bytecode('lock')
        assert self.compiler.environment.scripts == scripts

    def test_compiler_and_environment_are_hashable(self):
        other = compiler.create_compiler(self.compiler.environment)
        compilers = {self.compiler: 'first', other: 'second'}
        assert compilers[self.compiler] == 'first'
        assert compilers[other] == 'second'
        assert self.compiler != other
        assert len({self.compiler.environment, other.environment}) == 1

    def test_debug_returns_artifact(self):
        artifact = self.compiler.generate_bytecode('lock', debug=True)
        assert type(artifact) is classes.CompilationArtifact
        assert artifact.success
        assert artifact.source == 'OP_1 unlock_part OP_EQUAL'
        assert len(artifact.tokens) == 5
        assert len(artifact.ast.statements) == 3
        assert [type(n) for n in artifact.resolved] == [
            classes.ResolvedOpcode, classes.ResolvedLiteral, classes.ResolvedOpcode,
        ]
        assert [(s.kind, s.name) for s in artifact.trace] == [
            ('opcode', 'OP_1'), ('script', 'unlock_part'), ('opcode', 'OP_EQUAL'),
        ]
        assert artifact.trace[1].value == b'\x02\xab\xcd'
        assert artifact.bytecode.hex() == '5102abcd87'

    def test_debug_artifact_keeps_partial_products_on_failure(self):
        common = compiler.create_compiler_common(scripts={'test': 'OP_1 bogus'})
        artifact = common.generate_bytecode('test', debug=True)
        assert not artifact.success
        assert artifact.bytecode is None
        assert artifact.ast is not None
        assert artifact.error_type is errors.ErrorType.RESOLVE

    def test_compilation_is_logged_at_debug_level(self):
        with self.assertLogs('authtemplate.compiler', level='DEBUG') as logs:
            self.compiler.generate_bytecode('lock')
        assert any('Compiling script "lock"' in line for line in logs.output)


class TestAsyncCompiler(unittest.TestCase):
    def test_async_compilation_matches_sync(self):
        common = compiler.create_compiler_common(
            scripts={'test': '<1> $(<2> <3> OP_ADD) <"abc">'}
        )
        sync_result = common.generate_bytecode('test')
        async_result = asyncio.run(common.generate_bytecode_async('test'))
        assert async_result == sync_result
        assert async_result.bytecode.hex() == '510503616263'

    def test_async_compilation_awaits_async_vm(self):
        class AsyncStackMachine:
            async def evaluate(self, bytecode: bytes) -> classes.EvaluationResult:
                await asyncio.sleep(0)
                return functions.StackMachine().evaluate(bytecode)

        common = compiler.create_compiler_common(
            scripts={'test': '$(<2> <3> OP_ADD)'}, vm=AsyncStackMachine()
        )
        result = asyncio.run(common.generate_bytecode_async('test'))
        assert result.bytecode == b'\x05'

    def test_sync_compilation_rejects_async_vm(self):
        class AsyncStackMachine:
            async def evaluate(self, bytecode: bytes) -> classes.EvaluationResult:
                return functions.StackMachine().evaluate(bytecode)

        common = compiler.create_compiler_common(
            scripts={'test': '$(<2> <3> OP_ADD)'}, vm=AsyncStackMachine()
        )
        result = common.generate_bytecode('test')
        assert not result.success
        assert result.error_type is errors.ErrorType.RESOLVE
        assert 'use generate_bytecode_async' in result.errors[0].message

    def test_async_errors_are_reported_like_sync_errors(self):
        common = compiler.create_compiler_common(scripts={'test': 'OP_1 bogus'})
        result = asyncio.run(common.generate_bytecode_async('test'))
        assert result == common.generate_bytecode('test')


if __name__ == '__main__':
    unittest.main()
