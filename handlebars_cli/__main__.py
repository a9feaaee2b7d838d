from handlebars_cli._internal.cli import main

if __name__ == '__main__':
    main()
