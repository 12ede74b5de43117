"""
Declarations of the library packages the analysis needs to understand.

Each entry maps an import path to body-less Go sources. Stubs are used only
when no search root provides the import path, so a real checkout of a
package always wins.
"""

#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from typing import Dict, List, Optional


_ERRORS = """
package errors

func New(text string) error
func Is(err, target error) bool
func As(err error, target any) bool
func Unwrap(err error) error
func Join(errs ...error) error

var ErrUnsupported = New("unsupported operation")
"""

_FMT = """
package fmt

type Stringer interface {
	String() string
}

func Errorf(format string, a ...any) error
func Sprintf(format string, a ...any) string
func Sprint(a ...any) string
func Printf(format string, a ...any) (n int, err error)
func Println(a ...any) (n int, err error)
func Print(a ...any) (n int, err error)
"""

_IO = """
package io

import "errors"

type Reader interface {
	Read(p []byte) (n int, err error)
}

type Writer interface {
	Write(p []byte) (n int, err error)
}

type Closer interface {
	Close() error
}

type ReadCloser interface {
	Reader
	Closer
}

var EOF = errors.New("EOF")
var ErrUnexpectedEOF = errors.New("unexpected EOF")
"""

_IO_FS = """
package fs

import "errors"

type FileMode uint32

type PathError struct {
	Op   string
	Path string
	Err  error
}

func (e *PathError) Error() string
func (e *PathError) Unwrap() error

var ErrNotExist = errors.New("file does not exist")
var ErrExist = errors.New("file already exists")
var ErrPermission = errors.New("permission denied")
"""

_OS = """
package os

import "io/fs"

type PathError = fs.PathError

type LinkError struct {
	Op  string
	Old string
	New string
	Err error
}

func (e *LinkError) Error() string
func (e *LinkError) Unwrap() error

type SyscallError struct {
	Syscall string
	Err     error
}

func (e *SyscallError) Error() string
func (e *SyscallError) Unwrap() error

type File struct {
	name string
}

func (f *File) Close() error
func (f *File) Name() string

func Open(name string) (*File, error)
func Remove(name string) error
func Getenv(key string) string
func Exit(code int)

var ErrNotExist = fs.ErrNotExist
var ErrExist = fs.ErrExist
var ErrPermission = fs.ErrPermission
"""

_STRCONV = """
package strconv

import "errors"

type NumError struct {
	Func string
	Num  string
	Err  error
}

func (e *NumError) Error() string
func (e *NumError) Unwrap() error

func Atoi(s string) (int, error)
func Itoa(i int) string
func ParseInt(s string, base int, bitSize int) (int64, error)
func Quote(s string) string

var ErrRange = errors.New("value out of range")
var ErrSyntax = errors.New("invalid syntax")
"""

_REFLECT = """
package reflect

type Type interface {
	Name() string
	String() string
}

type Value struct {
	flag uintptr
}

func (v Value) Interface() any
func (v Value) IsNil() bool

func ValueOf(i any) Value
func TypeOf(i any) Type
func TypeAssert[T any](v Value) (T, bool)

type ValueError struct {
	Method string
}

func (e *ValueError) Error() string
"""

_CONTEXT = """
package context

import "errors"

type Context interface {
	Done() <-chan struct{}
	Err() error
	Value(key any) any
}

type CancelFunc func()

func Background() Context
func TODO() Context
func WithCancel(parent Context) (Context, CancelFunc)

var Canceled = errors.New("context canceled")
var DeadlineExceeded error = deadlineExceededError{}

type deadlineExceededError struct{}

func (deadlineExceededError) Error() string
func (deadlineExceededError) Timeout() bool
func (deadlineExceededError) Temporary() bool
"""

_MATH_RAND = """
package rand

type Rand struct {
	seed int64
}

func (r *Rand) Intn(n int) int

func New(src Source) *Rand
func Intn(n int) int

type Source interface {
	Int63() int64
}
"""

_MATH_RAND_V2 = """
package rand

func IntN(n int) int
func N[Int intType](n Int) Int

type intType interface {
	~int | ~int8 | ~int16 | ~int32 | ~int64
}
"""

_TESTING = """
package testing

type TB interface {
	Errorf(format string, args ...any)
	Fatalf(format string, args ...any)
	Helper()
}

type T struct {
	name string
}

func (t *T) Errorf(format string, args ...any)
func (t *T) Fatalf(format string, args ...any)
func (t *T) Fatal(args ...any)
func (t *T) Helper()
func (t *T) Run(name string, f func(t *T)) bool

type B struct {
	N int
}

type M struct{}
"""

_XERRORS = """
package xerrors

func New(text string) error
func Errorf(format string, a ...any) error
func Is(err, target error) bool
func As(err error, target any) bool
func Unwrap(err error) error
"""

_X_EXP_ERRORS = """
package errors

func New(text string) error
func Is(err, target error) bool
func As(err error, target any) bool
func Unwrap(err error) error
"""

_PKG_ERRORS = """
package errors

func New(message string) error
func Errorf(format string, args ...any) error
func Wrap(err error, message string) error
func Wrapf(err error, format string, args ...any) error
func WithStack(err error) error
func Cause(err error) error
func Is(err, target error) bool
func As(err error, target any) bool
func Unwrap(err error) error
"""

_GO_ERRORS = """
package errors

type Error struct {
	Err   error
	stack []uintptr
}

func (err *Error) Error() string
func (err *Error) ErrorStack() string

func New(e any) *Error
func Errorf(format string, a ...any) *Error
func Wrap(e any, skip int) *Error
func Is(e error, original error) bool
func As(err error, target any) bool
func Unwrap(err error) error
"""

_COCKROACH_ERRORS = """
package errors

func New(msg string) error
func Newf(format string, args ...any) error
func Errorf(format string, args ...any) error
func Wrap(err error, msg string) error
func Wrapf(err error, format string, args ...any) error
func Is(err, reference error) bool
func As(err error, target any) bool
func Unwrap(err error) error
"""

_COCKROACH_ERRUTIL = """
package errutil

func New(msg string) error
func Newf(format string, args ...any) error
func As(err error, target any) bool
"""

_JUJU_ERRORS = """
package errors

type Err struct {
	message string
	cause   error
}

func (e *Err) Error() string
func (e *Err) Cause() error
func (e *Err) Unwrap() error

func New(message string) error
func Errorf(format string, args ...any) error
func Trace(other error) error
func Annotate(other error, message string) error
func Is(err, target error) bool
func As(err error, target any) bool
func AsType[T error](err error) (T, bool)
func HasType[T error](err error) bool
func Cause(err error) error
"""

_TESTIFY_ASSERTIONS = """
package {name}

type TestingT interface {
	Errorf(format string, args ...any)
}

type Assertions struct {
	t TestingT
}

func New(t TestingT) *Assertions

func (a *Assertions) ErrorAs(err error, target any, msgAndArgs ...any) {result}
func (a *Assertions) ErrorAsf(err error, target any, msg string, args ...any) {result}
func (a *Assertions) NotErrorAs(err error, target any, msgAndArgs ...any) {result}
func (a *Assertions) NotErrorAsf(err error, target any, msg string, args ...any) {result}
func (a *Assertions) NoError(err error, msgAndArgs ...any) {result}
func (a *Assertions) Error(err error, msgAndArgs ...any) {result}
func (a *Assertions) ErrorIs(err, target error, msgAndArgs ...any) {result}

func ErrorAs(t TestingT, err error, target any, msgAndArgs ...any) {result}
func ErrorAsf(t TestingT, err error, target any, msg string, args ...any) {result}
func NotErrorAs(t TestingT, err error, target any, msgAndArgs ...any) {result}
func NotErrorAsf(t TestingT, err error, target any, msg string, args ...any) {result}
func NoError(t TestingT, err error, msgAndArgs ...any) {result}
func Error(t TestingT, err error, msgAndArgs ...any) {result}
func ErrorIs(t TestingT, err, target error, msgAndArgs ...any) {result}
"""

STUB_SOURCES: Dict[str, str] = {
    "errors": _ERRORS,
    "fmt": _FMT,
    "io": _IO,
    "io/fs": _IO_FS,
    "os": _OS,
    "strconv": _STRCONV,
    "reflect": _REFLECT,
    "context": _CONTEXT,
    "math/rand": _MATH_RAND,
    "math/rand/v2": _MATH_RAND_V2,
    "testing": _TESTING,
    "golang.org/x/xerrors": _XERRORS,
    "golang.org/x/exp/errors": _X_EXP_ERRORS,
    "github.com/pkg/errors": _PKG_ERRORS,
    "github.com/go-errors/errors": _GO_ERRORS,
    "github.com/cockroachdb/errors": _COCKROACH_ERRORS,
    "github.com/cockroachdb/errors/errutil": _COCKROACH_ERRUTIL,
    "github.com/juju/errors": _JUJU_ERRORS,
    # testify/require mirrors assert, but its functions return nothing.
    "github.com/stretchr/testify/assert":
        _TESTIFY_ASSERTIONS.replace("{name}", "assert").replace("{result}", "bool"),
    "github.com/stretchr/testify/require":
        _TESTIFY_ASSERTIONS.replace("{name}", "require").replace(" {result}", ""),
}


def stub_packages() -> List[str]:
    return sorted(STUB_SOURCES)


def stub_source(import_path: str) -> Optional[str]:
    """Return the stub source for `import_path`, or None."""
    return STUB_SOURCES.get(import_path)


def stub_filename(import_path: str) -> str:
    return f"<stdlib>/{import_path}/{import_path.rsplit('/', 1)[-1]}.go"
